"""Map image regions onto HDF5 hyperslab selections.

Host vectors list the fastest-moving axis first; HDF5 lists the slowest
first. For multi-component images the component axis is the fastest-moving
axis on disk and is always selected in full.
"""

from __future__ import annotations

from dataclasses import dataclass

from h5container.errors import DimensionMismatchError
from h5container.utils.log import get_logger
from h5container.utils.schema import ImageRegion, RegionOverrides

logger = get_logger(__name__)


@dataclass
class Hyperslab:
    """A strided box over an on-disk array, in on-disk axis order."""

    offset: tuple[int, ...]
    count: tuple[int, ...]
    stride: tuple[int, ...]

    @property
    def rank(self) -> int:
        return len(self.count)

    @property
    def shape(self) -> tuple[int, ...]:
        """Shape of the compact in-memory array the selection maps to."""
        return self.count

    @property
    def size(self) -> int:
        n = 1
        for c in self.count:
            n *= c
        return n

    def to_slices(self) -> tuple[slice, ...]:
        """Selection usable for h5py dataset indexing."""
        return tuple(
            slice(o, o + (c - 1) * s + 1, s) if c > 0 else slice(o, o)
            for o, c, s in zip(self.offset, self.count, self.stride)
        )

    def check_bounds(self, shape: tuple[int, ...]) -> None:
        """Raise if the selection does not fit an array of ``shape``."""
        if len(shape) != self.rank:
            raise DimensionMismatchError(
                f"Selection has {self.rank} axes but the dataset has {len(shape)}"
            )
        for axis, (o, c, s, extent) in enumerate(zip(self.offset, self.count, self.stride, shape)):
            if o < 0 or c < 0 or (c > 0 and o + (c - 1) * s >= extent):
                raise DimensionMismatchError(
                    f"Selection offset={o} count={c} stride={s} exceeds extent {extent} "
                    f"on dataset axis {axis}"
                )


def disk_shape(dimensions: list[int], num_components: int) -> tuple[int, ...]:
    """On-disk shape for an image: host extents reversed, components last."""
    shape = tuple(reversed([int(d) for d in dimensions]))
    if num_components > 1:
        shape += (int(num_components),)
    return shape


def compute_hyperslab(
    region: ImageRegion,
    num_components: int,
    num_dims: int,
    overrides: RegionOverrides | None = None,
) -> Hyperslab:
    """Build the on-disk selection for a requested region.

    Args:
        region: Requested region in host axis order.
        num_components: Components per voxel.
        num_dims: Image dimensionality.
        overrides: Explicit offset/size/stride replacing the region's own
            values for every axis they cover.

    Returns:
        A :class:`Hyperslab` whose rank is ``num_dims``, plus one when
        ``num_components > 1``.
    """
    overrides = overrides or RegionOverrides()
    rank = num_dims + (1 if num_components > 1 else 0)
    offset = [0] * rank
    count = [1] * rank
    stride = [1] * rank

    i = 0
    if num_components > 1:
        count[rank - 1] = num_components
        i += 1

    j = 0
    while j < region.dimension and i < rank:
        axis = rank - i - 1
        offset[axis] = overrides.offset[j] if overrides.offset is not None else region.index[j]
        count[axis] = overrides.size[j] if overrides.size is not None else region.size[j]
        stride[axis] = overrides.stride[j] if overrides.stride is not None else 1
        i += 1
        j += 1

    # axes beyond the region's dimensionality stay at offset 0, count 1

    slab = Hyperslab(tuple(offset), tuple(count), tuple(stride))
    logger.debug("Hyperslab selection", offset=slab.offset, count=slab.count, stride=slab.stride)
    return slab
