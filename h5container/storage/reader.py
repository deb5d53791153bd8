"""Random-access HDF5 reader for image datasets.

Reads geometry and metadata up front; voxel data is read lazily, one region
at a time.
"""

from __future__ import annotations

import h5py
import numpy as np

from h5container.errors import DimensionMismatchError, NotFoundError
from h5container.metadata import MetaDataDictionary
from h5container.storage.attributes import read_geometry
from h5container.storage.format import DEFAULT_DATASET_NAME, DEFAULT_PATH, METADATA_GROUP
from h5container.storage.metadata import read_metadata
from h5container.storage.paths import join_path, path_exists
from h5container.storage.region import compute_hyperslab
from h5container.storage.session import ContainerSession, h5_errors
from h5container.utils.schema import ImageDescriptor, ImageRegion, RegionOverrides


class ImageReader:
    """Reads one image dataset from an open session.

    Args:
        session: Session whose file is open.
        path: Group path holding the dataset.
        dataset_name: Name of the voxel dataset inside ``path``.
    """

    def __init__(
        self,
        session: ContainerSession,
        path: str = DEFAULT_PATH,
        dataset_name: str = DEFAULT_DATASET_NAME,
    ) -> None:
        self.session = session
        self.path = path
        self.dataset_name = dataset_name

    @property
    def dataset_path(self) -> str:
        return join_path(self.path, self.dataset_name)

    def dataset(self) -> h5py.Dataset:
        """Return the voxel dataset.

        Raises:
            NotFoundError: If the group or dataset is missing.
        """
        h5file = self.session.file
        if not path_exists(h5file, self.path):
            raise NotFoundError(f"{self.path} does not exist in {self.session.path}")
        if not path_exists(h5file, self.dataset_path):
            raise NotFoundError(f"Dataset {self.dataset_path} not found in {self.session.path}")
        node = h5file[self.dataset_path]
        if not isinstance(node, h5py.Dataset):
            raise NotFoundError(f"{self.dataset_path} is not a dataset")
        return node

    def read_information(
        self,
        overrides: RegionOverrides | None = None,
        use_metadata: bool = False,
    ) -> tuple[ImageDescriptor, MetaDataDictionary]:
        """Read geometry and (optionally) the metadata dictionary.

        Raises:
            NotFoundError: If the dataset, or the metadata group when
                ``use_metadata`` is set, is missing.
        """
        with h5_errors(f"Cannot read image information from {self.session.path}"):
            ds = self.dataset()
            descriptor = read_geometry(ds, overrides)

            metadata = MetaDataDictionary()
            if use_metadata:
                group = self.session.file[join_path(self.path)]
                if METADATA_GROUP not in group:
                    raise NotFoundError(
                        f"{join_path(self.path, METADATA_GROUP)} does not exist in {self.session.path}"
                    )
                metadata = read_metadata(group)
        return descriptor, metadata

    def read_region(
        self,
        descriptor: ImageDescriptor,
        region: ImageRegion,
        overrides: RegionOverrides | None = None,
        out: np.ndarray | None = None,
    ) -> np.ndarray:
        """Read ``region`` into a compact array.

        Args:
            descriptor: Geometry from :meth:`read_information`.
            region: Region to read, in host axis order.
            overrides: Explicit dataset offset/size/stride.
            out: Optional C-contiguous buffer with exactly as many elements
                as the region; filled in place.

        Returns:
            Array shaped like the on-disk selection (slowest axis first,
            components last). When ``out`` is given this is a view of it.
        """
        slab = compute_hyperslab(
            region,
            descriptor.number_of_components,
            descriptor.number_of_dimensions,
            overrides,
        )

        if out is None:
            out = np.empty(slab.shape, dtype=descriptor.component_type.dtype)
        elif out.size != slab.size:
            raise DimensionMismatchError(f"Buffer has {out.size} elements, region needs {slab.size}")
        elif not out.flags.c_contiguous:
            raise ValueError("Destination buffer must be C-contiguous")
        dest = out.reshape(slab.shape)

        with h5_errors(f"Cannot read {self.dataset_path} from {self.session.path}"):
            ds = self.dataset()
            slab.check_bounds(ds.shape)
            if slab.size:
                ds.read_direct(dest, source_sel=slab.to_slices())
        return dest
