"""HDF5 writer for image datasets.

Creates the voxel dataset with its geometry attributes and metadata group
once, then writes voxel data region by region.
"""

from __future__ import annotations

from typing import Any

import h5py
import numpy as np

from h5container.errors import AlreadyExistsError, DimensionMismatchError
from h5container.metadata import MetaDataDictionary
from h5container.storage.attributes import write_geometry
from h5container.storage.format import (
    COMPRESSION,
    DEFAULT_COMPRESSION_LEVEL,
    DEFAULT_DATASET_NAME,
    DEFAULT_PATH,
    MAX_COMPRESSION_LEVEL,
    METADATA_GROUP,
)
from h5container.storage.metadata import write_metadata
from h5container.storage.paths import ensure_group, join_path
from h5container.storage.region import compute_hyperslab, disk_shape
from h5container.storage.session import ContainerSession, h5_errors
from h5container.storage.types import encode_pixel_type, write_tag
from h5container.utils.log import get_logger
from h5container.utils.schema import ImageDescriptor, ImageRegion, RegionOverrides

logger = get_logger(__name__)


class ImageWriter:
    """Writes one image dataset into an open, writable session.

    Args:
        session: Session whose file is open for writing.
        path: Group path holding the dataset.
        dataset_name: Name of the voxel dataset inside ``path``.
        overwrite: Replace an existing dataset and metadata group.
        use_compression: Enable gzip compression.
        compression_level: gzip level, 0-9.
        use_chunking: Chunk the dataset in (N-1)-dimensional slabs.
    """

    def __init__(
        self,
        session: ContainerSession,
        path: str = DEFAULT_PATH,
        dataset_name: str = DEFAULT_DATASET_NAME,
        overwrite: bool = False,
        use_compression: bool = False,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
        use_chunking: bool = False,
    ) -> None:
        self.session = session
        self.path = path
        self.dataset_name = dataset_name
        self.overwrite = overwrite
        self.use_compression = use_compression
        self.compression_level = min(max(int(compression_level), 0), MAX_COMPRESSION_LEVEL)
        self.use_chunking = use_chunking

    @property
    def dataset_path(self) -> str:
        return join_path(self.path, self.dataset_name)

    def _clear_existing(self, group: h5py.Group) -> None:
        for name in (self.dataset_name, METADATA_GROUP):
            if name not in group:
                continue
            if not self.overwrite:
                raise AlreadyExistsError(
                    f"{join_path(group.name, name)} already exists in {self.session.path}"
                )
            del group[name]
            logger.debug("Removed existing node", path=join_path(group.name, name))

    def _dataset_options(self, shape: tuple[int, ...]) -> dict[str, Any]:
        options: dict[str, Any] = {}
        if self.use_compression:
            options["compression"] = COMPRESSION
            options["compression_opts"] = self.compression_level
        if self.use_chunking and shape:
            options["chunks"] = (1, *(max(d, 1) for d in shape[1:]))
        return options

    def write_information(
        self,
        descriptor: ImageDescriptor,
        metadata: MetaDataDictionary | None = None,
    ) -> h5py.Dataset:
        """Create the voxel dataset, its attributes and the metadata group.

        Args:
            descriptor: Geometry and pixel type of the image.
            metadata: Dictionary to store, or None to skip the metadata group.

        Returns:
            The created dataset.

        Raises:
            AlreadyExistsError: If the dataset or metadata group exists and
                ``overwrite`` is off.
            UnsupportedTypeError: If the pixel type cannot be stored.
        """
        disk_dtype, tag = encode_pixel_type(descriptor.component_type)
        shape = disk_shape(descriptor.dimensions, descriptor.number_of_components)

        with h5_errors(f"Cannot write image information to {self.session.path}"):
            group = ensure_group(self.session.file, self.path)
            self._clear_existing(group)

            ds = group.create_dataset(
                self.dataset_name,
                shape=shape,
                dtype=disk_dtype,
                **self._dataset_options(shape),
            )
            logger.debug("Created dataset", path=ds.name, shape=shape, dtype=str(disk_dtype))

            if tag is not None:
                write_tag(ds, tag)
            write_geometry(ds, descriptor)

            if metadata is not None:
                write_metadata(group, metadata)
        return ds

    def write_region(
        self,
        buffer: Any,
        descriptor: ImageDescriptor,
        region: ImageRegion,
        overrides: RegionOverrides | None = None,
    ) -> None:
        """Write ``buffer`` into ``region`` of the existing dataset.

        The buffer is laid out like the on-disk array: slowest axis first,
        components last.

        Raises:
            DimensionMismatchError: If the buffer size does not match the
                region or the region falls outside the dataset.
        """
        slab = compute_hyperslab(
            region,
            descriptor.number_of_components,
            descriptor.number_of_dimensions,
            overrides,
        )
        data = np.asarray(buffer)
        if data.size != slab.size:
            raise DimensionMismatchError(
                f"Buffer has {data.size} elements, region needs {slab.size}"
            )

        with h5_errors(f"Cannot write {self.dataset_path} in {self.session.path}"):
            ds = self.session.file[self.dataset_path]
            slab.check_bounds(ds.shape)
            ds[slab.to_slices()] = data.reshape(slab.shape)
            self.session.file.flush()
