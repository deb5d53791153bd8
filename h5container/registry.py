"""Lookup table of image format handlers.

Handlers are registered explicitly at application start-up:

    from h5container.registry import default_registry, register_hdf5_container

    register_hdf5_container()
    io = default_registry.create_reader("scan.h5")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Protocol

from h5container.errors import NotFoundError
from h5container.imageio import HDF5ContainerImageIO
from h5container.storage.format import FILE_EXTENSIONS
from h5container.utils.log import get_logger

logger = get_logger(__name__)


class ImageIOHandler(Protocol):
    """Capabilities a format handler provides to the host."""

    def can_read(self, file_name: str | Path) -> bool: ...

    def can_write(self, file_name: str | Path) -> bool: ...

    def read_information(self) -> Any: ...

    def read(self, buffer: Any = None) -> Any: ...

    def write_information(self) -> None: ...

    def write(self, buffer: Any) -> None: ...


@dataclass
class FormatEntry:
    """A registered handler and the file extensions it claims."""

    name: str
    factory: Callable[..., ImageIOHandler]
    extensions: tuple[str, ...]
    description: str = ""

    def matches_extension(self, file_name: str | Path) -> bool:
        return str(file_name).lower().endswith(self.extensions)


@dataclass
class FormatRegistry:
    """Format handlers keyed by name, searched in registration order."""

    entries: dict[str, FormatEntry] = field(default_factory=dict)

    def register(
        self,
        name: str,
        factory: Callable[..., ImageIOHandler],
        extensions: tuple[str, ...] | list[str],
        description: str = "",
    ) -> None:
        """Add (or replace) the handler registered under ``name``."""
        self.entries[name] = FormatEntry(
            name=name,
            factory=factory,
            extensions=tuple(ext.lower() for ext in extensions),
            description=description,
        )
        logger.debug("Registered format handler", name=name, extensions=list(extensions))

    def unregister(self, name: str) -> None:
        self.entries.pop(name, None)

    def __contains__(self, name: str) -> bool:
        return name in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def create_reader(self, file_name: str | Path, **kwargs: Any) -> ImageIOHandler:
        """Instantiate the first handler that can read ``file_name``.

        Handlers claiming the file's extension are tried first, then all
        others by file signature.

        Raises:
            NotFoundError: If no handler can read the file.
        """
        ordered = sorted(self.entries.values(), key=lambda e: not e.matches_extension(file_name))
        for entry in ordered:
            handler = entry.factory(file_name, **kwargs)
            if handler.can_read(file_name):
                return handler
        raise NotFoundError(f"No registered format can read {file_name}")

    def create_writer(self, file_name: str | Path, **kwargs: Any) -> ImageIOHandler:
        """Instantiate the first handler that can write ``file_name``.

        Raises:
            NotFoundError: If no handler accepts the file extension.
        """
        for entry in self.entries.values():
            handler = entry.factory(file_name, **kwargs)
            if handler.can_write(file_name):
                return handler
        raise NotFoundError(f"No registered format can write {file_name}")


default_registry = FormatRegistry()

HDF5_CONTAINER_FORMAT = "HDF5Container"
_hdf5_container_registered = False


def register_hdf5_container(registry: FormatRegistry | None = None) -> None:
    """Register :class:`HDF5ContainerImageIO` in ``registry``.

    For the default registry this runs once per process; later calls are
    no-ops.
    """
    global _hdf5_container_registered

    if registry is None:
        if _hdf5_container_registered:
            return
        registry = default_registry
        _hdf5_container_registered = True

    registry.register(
        HDF5_CONTAINER_FORMAT,
        HDF5ContainerImageIO,
        FILE_EXTENSIONS,
        description="HDF5 container image IO: images and metadata inside HDF5 groups",
    )
