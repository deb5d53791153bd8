"""h5container — N-dimensional images and their metadata inside HDF5 files.

Stores an image's voxels, geometry (origin, spacing, direction, dimensions)
and a typed key/value metadata dictionary under any group of an HDF5 file,
and reads arbitrary sub-regions back without loading the whole array.

Quick start:
    import numpy as np
    from h5container import HDF5ContainerImageIO, ImageDescriptor, ImageRegion

    # Write
    with HDF5ContainerImageIO("scan.h5", path="/patient/ct", use_metadata=True) as io:
        io.descriptor = ImageDescriptor(dimensions=[128, 128, 40],
                                        spacing=[0.7, 0.7, 2.5],
                                        component_type="short")
        io.metadata["Modality"] = "CT"
        io.write(volume)                # volume.shape == (40, 128, 128)

    # Read a sub-region
    with HDF5ContainerImageIO("scan.h5", path="/patient/ct", use_metadata=True) as io:
        io.read_information()
        print(io.descriptor.spacing, io.metadata["Modality"])
        io.io_region = ImageRegion(index=[32, 32, 10], size=[64, 64, 5])
        block = io.read()               # block.shape == (5, 64, 64)

    # Registry
    from h5container import default_registry, register_hdf5_container
    register_hdf5_container()
    io = default_registry.create_reader("scan.h5", path="/patient/ct")
"""

__version__ = "0.1.0"

from h5container.errors import (
    AlreadyExistsError,
    ContainerIOError,
    DimensionMismatchError,
    HDF5ContainerError,
    MalformedLayoutError,
    NotFoundError,
    UnsupportedTypeError,
)
from h5container.imageio import HDF5ContainerImageIO
from h5container.metadata import MetaDataDictionary, MetaDataValue
from h5container.registry import FormatRegistry, default_registry, register_hdf5_container
from h5container.storage.types import ComponentType
from h5container.utils.schema import ImageDescriptor, ImageRegion, RegionOverrides

__all__ = [
    "HDF5ContainerImageIO",
    "ImageDescriptor",
    "ImageRegion",
    "RegionOverrides",
    "ComponentType",
    "MetaDataDictionary",
    "MetaDataValue",
    "FormatRegistry",
    "default_registry",
    "register_hdf5_container",
    "HDF5ContainerError",
    "NotFoundError",
    "AlreadyExistsError",
    "DimensionMismatchError",
    "UnsupportedTypeError",
    "MalformedLayoutError",
    "ContainerIOError",
    "__version__",
]
