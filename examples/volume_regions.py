"""h5container Example: Two Series in One Study File

Writes a CT volume and an RGB overlay into separate groups of one HDF5
file, then reads back geometry, metadata, a sub-region and a
downsampled view of the volume.

Run:
    python examples/volume_regions.py

Output:
    - Creates study.h5 with /study/ct and /study/overlay
    - Prints geometry, metadata and region shapes
"""

import numpy as np

from h5container import (
    ComponentType,
    HDF5ContainerImageIO,
    ImageDescriptor,
    ImageRegion,
    RegionOverrides,
    default_registry,
    register_hdf5_container,
)


def synthetic_ct(shape: tuple[int, int, int], seed: int) -> np.ndarray:
    """Soft-tissue background with a dense sphere in the middle."""
    rng = np.random.default_rng(seed)
    z, y, x = np.indices(shape)
    center = np.array(shape) / 2
    radius = min(shape) / 4
    inside = (z - center[0]) ** 2 + (y - center[1]) ** 2 + (x - center[2]) ** 2 < radius**2
    volume = rng.normal(40, 10, size=shape)
    volume[inside] = 900
    return volume.astype(np.int16)


def main() -> None:
    path = "study.h5"
    ct = synthetic_ct((40, 64, 64), seed=7)

    print("[1/3] Writing CT volume...")
    with HDF5ContainerImageIO(
        path, path="/study/ct", recreate=True, use_metadata=True,
        use_compression=True, use_chunking=True,
    ) as io:
        io.descriptor = ImageDescriptor(
            dimensions=[64, 64, 40],
            spacing=[0.7, 0.7, 2.5],
            origin=[-22.4, -22.4, 0.0],
            component_type=ComponentType.SHORT,
        )
        io.metadata["Modality"] = "CT"
        io.metadata.encapsulate("WindowCenter", 40, ComponentType.SHORT)
        io.metadata["Contrast"] = False
        io.write(ct)

    print("[2/3] Writing RGB overlay...")
    overlay = np.zeros((64, 64, 3), dtype=np.uint8)
    overlay[16:48, 16:48, 0] = 255
    with HDF5ContainerImageIO(path, path="/study/overlay") as io:
        io.descriptor = ImageDescriptor(dimensions=[64, 64], number_of_components=3)
        io.write(overlay)

    print("[3/3] Reading back...")
    register_hdf5_container()
    io = default_registry.create_reader(path, path="/study/ct", use_metadata=True)
    desc = io.read_information()
    print(f"  dimensions: {desc.dimensions}  spacing: {desc.spacing}")
    for key, value in io.metadata.items():
        print(f"  {key}: {value}")

    io.io_region = ImageRegion(index=[16, 16, 10], size=[32, 32, 20])
    block = io.read()
    print(f"  sub-region shape: {block.shape}  max: {block.max()}")
    io.close()

    with HDF5ContainerImageIO(path, path="/study/ct") as io:
        io.overrides = RegionOverrides(stride=[2, 2, 1])
        desc = io.read_information()
        thumb = io.read()
        print(f"  strided dimensions: {desc.dimensions}  spacing: {desc.spacing}")
        print(f"  strided shape: {thumb.shape}")


if __name__ == "__main__":
    main()
