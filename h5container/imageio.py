"""HDF5ContainerImageIO — reads and writes images inside HDF5 containers.

Usage:
    from h5container import HDF5ContainerImageIO, ImageDescriptor

    io = HDF5ContainerImageIO("scan.h5", path="/study/series1", use_metadata=True)
    io.descriptor = ImageDescriptor(dimensions=[64, 64, 32], spacing=[0.5, 0.5, 2.0],
                                    component_type="short")
    io.metadata["Modality"] = "CT"
    io.write(voxels)            # voxels shaped (32, 64, 64)
    io.close()

    with HDF5ContainerImageIO("scan.h5", path="/study/series1", use_metadata=True) as io:
        io.read_information()
        io.io_region = ImageRegion(index=[0, 0, 10], size=[64, 64, 4])
        block = io.read()       # shape (4, 64, 64)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import h5py
import numpy as np
from pydantic import ValidationError

from h5container.errors import DimensionMismatchError
from h5container.metadata import MetaDataDictionary
from h5container.storage.format import (
    DEFAULT_COMPRESSION_LEVEL,
    DEFAULT_DATASET_NAME,
    DEFAULT_PATH,
    FILE_EXTENSIONS,
    MAX_COMPRESSION_LEVEL,
)
from h5container.storage.paths import join_path, path_exists
from h5container.storage.reader import ImageReader
from h5container.storage.session import ContainerSession
from h5container.storage.writer import ImageWriter
from h5container.utils.log import get_logger
from h5container.utils.schema import ImageDescriptor, ImageRegion, RegionOverrides

logger = get_logger(__name__)


class HDF5ContainerImageIO:
    """Image codec for one dataset inside an HDF5 file.

    Geometry and metadata are written once per session; voxel data can then
    be written (or read) in any number of regions.

    Args:
        file_name: HDF5 file to read or write.
        path: Group holding the dataset. Intermediate groups are created on write.
        dataset_name: Name of the voxel dataset.
        overwrite: Replace an existing dataset and metadata group on write.
        recreate: Truncate the file on write instead of reusing it.
        use_chunking: Chunk the dataset in (N-1)-dimensional slabs.
        use_metadata: Write/read the ``ITKMetaData`` group.
        use_compression: Enable gzip compression.
        compression_level: gzip level, 0-9.
    """

    max_compression_level = MAX_COMPRESSION_LEVEL

    def __init__(
        self,
        file_name: str | Path | None = None,
        path: str = DEFAULT_PATH,
        dataset_name: str = DEFAULT_DATASET_NAME,
        overwrite: bool = False,
        recreate: bool = False,
        use_chunking: bool = False,
        use_metadata: bool = False,
        use_compression: bool = False,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
    ) -> None:
        self.file_name = Path(file_name) if file_name is not None else None
        self.path = path
        self.dataset_name = dataset_name
        self.overwrite = overwrite
        self.recreate = recreate
        self.use_chunking = use_chunking
        self.use_metadata = use_metadata
        self.use_compression = use_compression
        self.compression_level = compression_level

        self.descriptor: ImageDescriptor | None = None
        self.metadata = MetaDataDictionary()
        self.io_region: ImageRegion | None = None
        self.overrides = RegionOverrides()

        self._session: ContainerSession | None = None
        self._information_written = False

    # --- Queries ---

    @staticmethod
    def can_write(file_name: str | Path) -> bool:
        """True if the file extension is one this codec writes."""
        try:
            return str(file_name).lower().endswith(FILE_EXTENSIONS)
        except Exception:
            return False

    @staticmethod
    def can_read(file_name: str | Path) -> bool:
        """True if ``file_name`` is an HDF5 file that can be opened.

        Never raises; a missing or unreadable file is simply False.
        """
        try:
            path = Path(file_name)
            if not path.is_file() or not h5py.is_hdf5(str(path)):
                return False
            with h5py.File(str(path), "r"):
                pass
            return True
        except Exception:
            return False

    def dataset_exists(self) -> bool:
        """True if the configured dataset exists in the file.

        Uses a separate read-only handle and leaves the write-once guard
        alone. Never raises.
        """
        self._close_session()
        try:
            with ContainerSession(self._require_file_name()) as session:
                session.open_read()
                return path_exists(session.file, self.path) and isinstance(
                    session.file.get(join_path(self.path, self.dataset_name)), h5py.Dataset
                )
        except Exception:
            return False

    # --- Reading ---

    def read_information(self) -> ImageDescriptor:
        """Read geometry (and metadata if ``use_metadata``) from the file.

        Safe to call again on the same instance; the metadata dictionary is
        cleared first. Resets ``io_region`` to the whole image.

        Raises:
            NotFoundError: File, group, dataset or metadata group missing.
            DimensionMismatchError: Active overrides have the wrong length.
            MalformedLayoutError: A geometry attribute has the wrong rank.
            UnsupportedTypeError: The voxel dtype is not supported.
            ContainerIOError: HDF5 failed to read the file.
        """
        self.metadata.clear()
        session = self._open_session(write=False)
        try:
            descriptor, metadata = self._reader(session).read_information(
                self.overrides, self.use_metadata
            )
        except BaseException:
            self._close_session()
            raise

        self.descriptor = descriptor
        self.metadata = metadata
        self.io_region = descriptor.largest_region()
        logger.debug(
            "Read image information",
            file=str(self.file_name),
            dataset=join_path(self.path, self.dataset_name),
            dimensions=descriptor.dimensions,
            pixels=descriptor.number_of_pixels,
            metadata_entries=len(metadata),
        )
        return descriptor

    def read(self, buffer: np.ndarray | None = None) -> np.ndarray:
        """Read the configured region (the whole image by default).

        Args:
            buffer: Optional pre-sized, C-contiguous destination.

        Returns:
            The voxels, slowest axis first and components last.
        """
        descriptor = self.descriptor
        if descriptor is None:
            descriptor = self.read_information()

        session = self._session
        if session is None or not session.is_open:
            session = self._open_session(write=False)
        region = self.io_region or descriptor.largest_region()
        return self._reader(session).read_region(descriptor, region, self.overrides, buffer)

    # --- Writing ---

    def write_information(self) -> None:
        """Create the dataset with its geometry and metadata.

        Only the first call in a session does anything; later calls return
        immediately so repeated :meth:`write` calls do not rewrite attributes.

        Raises:
            AlreadyExistsError: Dataset or metadata group exists and
                ``overwrite`` is off.
            DimensionMismatchError: The descriptor is inconsistent.
            UnsupportedTypeError: The pixel type cannot be stored.
            ContainerIOError: HDF5 failed to write the file.
        """
        if self._information_written:
            return

        descriptor = self._validated_descriptor()
        session = self._open_session(write=True, recreate=self.recreate)
        try:
            self._writer(session).write_information(
                descriptor, self.metadata if self.use_metadata else None
            )
        except BaseException:
            self._close_session()
            raise

        self._information_written = True
        logger.debug(
            "Wrote image information",
            file=str(self.file_name),
            dataset=join_path(self.path, self.dataset_name),
            dimensions=descriptor.dimensions,
            pixels=descriptor.number_of_pixels,
        )

    def write(self, buffer: Any) -> None:
        """Write ``buffer`` into the configured region (the whole image by default).

        Calls :meth:`write_information` first.
        """
        self.write_information()
        descriptor = self._require_descriptor()

        session = self._session
        if session is None or not session.writable:
            # the dataset already exists; reopen without truncating
            session = self._open_session(write=True)
        region = self.io_region or descriptor.largest_region()
        self._writer(session).write_region(buffer, descriptor, region, self.overrides)

    # --- Session ---

    def close(self) -> None:
        """Close the file and end the session.

        The next :meth:`write` starts a new session and writes the image
        information again.
        """
        self._close_session()
        self._information_written = False

    def __enter__(self) -> HDF5ContainerImageIO:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _require_file_name(self) -> Path:
        if self.file_name is None:
            raise ValueError("file_name is not set")
        return self.file_name

    def _open_session(self, write: bool, recreate: bool = False) -> ContainerSession:
        self._close_session()
        self._session = ContainerSession(self._require_file_name())
        if write:
            self._session.open_write(recreate=recreate)
        else:
            self._session.open_read()
        return self._session

    def _close_session(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def _reader(self, session: ContainerSession) -> ImageReader:
        return ImageReader(session, self.path, self.dataset_name)

    def _writer(self, session: ContainerSession) -> ImageWriter:
        return ImageWriter(
            session,
            path=self.path,
            dataset_name=self.dataset_name,
            overwrite=self.overwrite,
            use_compression=self.use_compression,
            compression_level=self.compression_level,
            use_chunking=self.use_chunking,
        )

    def _require_descriptor(self) -> ImageDescriptor:
        if self.descriptor is None:
            raise ValueError("descriptor is not set. Assign an ImageDescriptor before writing.")
        return self.descriptor

    def _validated_descriptor(self) -> ImageDescriptor:
        descriptor = self._require_descriptor()
        try:
            return ImageDescriptor.model_validate(descriptor.model_dump())
        except ValidationError as e:
            raise DimensionMismatchError(f"Inconsistent image descriptor: {e}") from e

    # --- Display ---

    def __repr__(self) -> str:
        flags = {
            "overwrite": self.overwrite,
            "recreate": self.recreate,
            "use_chunking": self.use_chunking,
            "use_metadata": self.use_metadata,
            "use_compression": self.use_compression,
        }
        on = [name for name, value in flags.items() if value]
        return (
            f"HDF5ContainerImageIO(file='{self.file_name}', path='{self.path}', "
            f"dataset='{self.dataset_name}', flags={on})"
        )
