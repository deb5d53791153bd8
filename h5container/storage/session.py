"""Ownership of the open HDF5 file handle.

A session holds at most one :class:`h5py.File`. Every open closes the
previous handle first, and the context-manager form closes on any exit.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

import h5py

from h5container.errors import ContainerIOError, HDF5ContainerError, NotFoundError
from h5container.storage.format import LIBVER_BOUNDS
from h5container.utils.log import get_logger

logger = get_logger(__name__)


@contextmanager
def h5_errors(context: str) -> Generator[None, Any, None]:
    """Re-raise h5py failures as :class:`ContainerIOError`.

    Errors that are already h5container errors pass through untouched.
    """
    try:
        yield
    except HDF5ContainerError:
        raise
    except (OSError, KeyError, ValueError, RuntimeError) as e:
        raise ContainerIOError(f"{context}: {e}") from e


class ContainerSession:
    """Opens, reopens and closes one HDF5 file.

    Args:
        file_name: Path of the HDF5 file.
    """

    def __init__(self, file_name: str | Path) -> None:
        self.path = Path(file_name)
        self._file: h5py.File | None = None
        self._writable = False

    @property
    def is_open(self) -> bool:
        return self._file is not None

    @property
    def writable(self) -> bool:
        return self._file is not None and self._writable

    @property
    def file(self) -> h5py.File:
        if self._file is None:
            raise RuntimeError("Session not opened. Call .open_read() or .open_write() first.")
        return self._file

    def open_read(self) -> h5py.File:
        """Open the file read-only.

        Raises:
            NotFoundError: If the file does not exist.
            ContainerIOError: If HDF5 cannot open it.
        """
        self.close()
        if not self.path.exists():
            raise NotFoundError(f"File not found: {self.path}")
        with h5_errors(f"Cannot open {self.path} for reading"):
            self._file = h5py.File(str(self.path), "r")
        self._writable = False
        logger.debug("Opened file", path=str(self.path), mode="r")
        return self._file

    def open_write(self, recreate: bool = False) -> h5py.File:
        """Open the file for writing.

        A missing file is created. An existing file is reopened read/write
        and its groups are reused, unless ``recreate`` truncates it.

        Raises:
            ContainerIOError: If HDF5 cannot create or open the file.
        """
        self.close()
        with h5_errors(f"Cannot open {self.path} for writing"):
            if recreate or not self.path.exists():
                mode = "w"
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self._file = h5py.File(str(self.path), mode, libver=LIBVER_BOUNDS)
            else:
                # existing files keep the format version they were created with
                mode = "r+"
                self._file = h5py.File(str(self.path), mode)
        self._writable = True
        logger.debug("Opened file", path=str(self.path), mode=mode)
        return self._file

    def close(self) -> None:
        """Close the file if it is open."""
        if self._file is None:
            return
        try:
            self._file.close()
        finally:
            self._file = None
            self._writable = False
            logger.debug("Closed file", path=str(self.path))

    def __enter__(self) -> ContainerSession:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        status = ("read/write" if self._writable else "read-only") if self.is_open else "closed"
        return f"ContainerSession(path='{self.path}', status={status})"
