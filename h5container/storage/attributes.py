"""Image geometry stored as attributes of the voxel dataset.

Writing stores Origin, Spacing, Dimension and Directions. Reading infers
geometry from whichever attributes exist, falling back to the dataset shape.
"""

from __future__ import annotations

import h5py
import numpy as np
from pydantic import ValidationError

from h5container.errors import MalformedLayoutError
from h5container.storage.format import (
    DIMENSION_ATTR,
    DIRECTIONS_ATTR,
    ORIGIN_ATTR,
    SPACING_ATTR,
)
from h5container.storage.types import decode_type, read_tags
from h5container.utils.log import get_logger
from h5container.utils.schema import ImageDescriptor, RegionOverrides

logger = get_logger(__name__)


def write_vector_attr(obj: h5py.HLObject, name: str, values: list, dtype: np.dtype) -> None:
    obj.attrs.create(name, np.asarray(values, dtype=dtype).reshape(-1))


def read_vector_attr(obj: h5py.HLObject, name: str, dtype: np.dtype) -> list:
    """Read a 1-D attribute.

    Raises:
        MalformedLayoutError: If the attribute is not 1-D.
    """
    value = np.asarray(obj.attrs[name])
    if value.ndim != 1:
        raise MalformedLayoutError(
            f"Attribute {name} of {obj.name} has {value.ndim} dimensions, expected 1"
        )
    return value.astype(dtype).tolist()


def write_directions_attr(
    obj: h5py.HLObject, name: str, direction: np.ndarray | list[list[float]]
) -> None:
    """Store the direction matrix as a 2-D attribute.

    The attribute shape is (columns, rows) and its buffer is the row-major
    matrix, so the matrix is recovered by reinterpreting the buffer.
    """
    matrix = np.asarray(direction, dtype=np.float64)
    rows, cols = matrix.shape
    obj.attrs.create(name, matrix.reshape(cols, rows))


def read_directions_attr(obj: h5py.HLObject, name: str) -> list[list[float]]:
    """Read a direction matrix written by :func:`write_directions_attr`.

    Raises:
        MalformedLayoutError: If the attribute is not 2-D.
    """
    value = np.asarray(obj.attrs[name])
    if value.ndim != 2:
        raise MalformedLayoutError(
            f"Wrong number of dimensions for {name} of {obj.name}: {value.ndim}, expected 2"
        )
    cols, rows = value.shape
    return value.astype(np.float64).reshape(rows, cols).tolist()


def write_geometry(ds: h5py.Dataset, descriptor: ImageDescriptor) -> None:
    """Attach Origin, Spacing, Dimension and Directions to the voxel dataset."""
    write_vector_attr(ds, ORIGIN_ATTR, descriptor.origin, np.float64)
    write_vector_attr(ds, SPACING_ATTR, descriptor.spacing, np.float64)
    write_vector_attr(ds, DIMENSION_ATTR, descriptor.dimensions, np.uint64)
    write_directions_attr(ds, DIRECTIONS_ATTR, descriptor.direction_matrix)


def read_geometry(ds: h5py.Dataset, overrides: RegionOverrides | None = None) -> ImageDescriptor:
    """Infer an :class:`ImageDescriptor` from a voxel dataset.

    If a ``Dimension`` attribute is present it defines the dimensionality and
    any extra trailing on-disk axis holds the vector components. Otherwise
    the dataset shape (reversed) gives the extents of a scalar image.

    Origin, Spacing and Directions are optional; missing ones keep their
    defaults. Active ``overrides`` must match the dimensionality. A stride
    scales the spacing and, without an explicit size, shrinks each strided
    extent to ``extent // stride - offset``.

    Raises:
        DimensionMismatchError: An override has the wrong length.
        MalformedLayoutError: An attribute has the wrong rank or the
            attributes are inconsistent.
        UnsupportedTypeError: The dataset dtype is not supported.
    """
    overrides = overrides or RegionOverrides()
    component_type = decode_type(ds.dtype, read_tags(ds))
    shape = ds.shape
    num_components = 1

    if DIMENSION_ATTR in ds.attrs:
        dimensions = [int(d) for d in read_vector_attr(ds, DIMENSION_ATTR, np.uint64)]
        n = len(dimensions)
        if len(shape) > n:
            num_components = int(shape[-1])
    else:
        n = len(shape)
        dimensions = [int(d) for d in reversed(shape)]
        logger.debug("Inferred dimensions from dataset shape", dimensions=dimensions)

    if overrides.active:
        overrides.validate_dimension(n)
    if overrides.size is not None:
        dimensions = list(overrides.size)

    spacing = read_vector_attr(ds, SPACING_ATTR, np.float64) if SPACING_ATTR in ds.attrs else []
    origin = read_vector_attr(ds, ORIGIN_ATTR, np.float64) if ORIGIN_ATTR in ds.attrs else []
    direction = read_directions_attr(ds, DIRECTIONS_ATTR) if DIRECTIONS_ATTR in ds.attrs else []

    if overrides.stride is not None:
        if not spacing:
            spacing = [1.0] * n
        spacing = [sp * st for sp, st in zip(spacing, overrides.stride)]
        if overrides.size is None:
            offset = overrides.offset or [0] * n
            dimensions = [
                d // st - off if st > 1 else d
                for d, st, off in zip(dimensions, overrides.stride, offset)
            ]

    try:
        descriptor = ImageDescriptor(
            dimensions=dimensions,
            spacing=spacing,
            origin=origin,
            direction=direction,
            number_of_components=num_components,
            component_type=component_type,
        )
    except ValidationError as e:
        raise MalformedLayoutError(f"Inconsistent geometry attributes on {ds.name}: {e}") from e

    logger.debug(
        "Read geometry",
        dataset=ds.name,
        dimensions=descriptor.dimensions,
        components=descriptor.number_of_components,
        component_type=descriptor.component_type.name,
    )
    return descriptor
