"""Mapping between host component types and HDF5 scalar types.

HDF5 stores integers by width only, so a few host types share an on-disk
representation. Those are written with a boolean tag attribute naming the
host type; on read a tag, when present, wins over the on-disk dtype.

Canonical on-disk widths:

    BOOL       uint8   + isBool
    LONG       int64   + isLong
    ULONG      uint64  + isUnsignedLong
    LONGLONG   int64   + isLLong
    ULONGLONG  uint64  + isULLong

Untagged int64/uint64 decode to LONG/ULONG (native ``long`` on LP64).
"""

from __future__ import annotations

from enum import Enum

import h5py
import numpy as np

from h5container.errors import UnsupportedTypeError
from h5container.storage.format import (
    IS_BOOL,
    IS_LLONG,
    IS_LONG,
    IS_ULLONG,
    IS_UNSIGNED_LONG,
    TAGS,
)


class ComponentType(str, Enum):
    """Scalar type of an image component or metadata value."""

    BOOL = "bool"
    CHAR = "char"
    UCHAR = "uchar"
    SHORT = "short"
    USHORT = "ushort"
    INT = "int"
    UINT = "uint"
    LONG = "long"
    ULONG = "ulong"
    LONGLONG = "longlong"
    ULONGLONG = "ulonglong"
    FLOAT = "float"
    DOUBLE = "double"
    STRING = "string"

    @property
    def dtype(self) -> np.dtype:
        """Host numpy dtype for values of this type."""
        if self is ComponentType.STRING:
            raise UnsupportedTypeError("STRING has no numeric dtype")
        return _HOST_DTYPES[self]

    @property
    def is_pixel_type(self) -> bool:
        return self not in (ComponentType.BOOL, ComponentType.STRING)


_HOST_DTYPES: dict[ComponentType, np.dtype] = {
    ComponentType.BOOL: np.dtype(np.bool_),
    ComponentType.CHAR: np.dtype(np.int8),
    ComponentType.UCHAR: np.dtype(np.uint8),
    ComponentType.SHORT: np.dtype(np.int16),
    ComponentType.USHORT: np.dtype(np.uint16),
    ComponentType.INT: np.dtype(np.int32),
    ComponentType.UINT: np.dtype(np.uint32),
    ComponentType.LONG: np.dtype(np.int64),
    ComponentType.ULONG: np.dtype(np.uint64),
    ComponentType.LONGLONG: np.dtype(np.int64),
    ComponentType.ULONGLONG: np.dtype(np.uint64),
    ComponentType.FLOAT: np.dtype(np.float32),
    ComponentType.DOUBLE: np.dtype(np.float64),
}

_DISK_TYPES: dict[ComponentType, tuple[np.dtype, str | None]] = {
    ComponentType.BOOL: (np.dtype(np.uint8), IS_BOOL),
    ComponentType.CHAR: (np.dtype(np.int8), None),
    ComponentType.UCHAR: (np.dtype(np.uint8), None),
    ComponentType.SHORT: (np.dtype(np.int16), None),
    ComponentType.USHORT: (np.dtype(np.uint16), None),
    ComponentType.INT: (np.dtype(np.int32), None),
    ComponentType.UINT: (np.dtype(np.uint32), None),
    ComponentType.LONG: (np.dtype(np.int64), IS_LONG),
    ComponentType.ULONG: (np.dtype(np.uint64), IS_UNSIGNED_LONG),
    ComponentType.LONGLONG: (np.dtype(np.int64), IS_LLONG),
    ComponentType.ULONGLONG: (np.dtype(np.uint64), IS_ULLONG),
    ComponentType.FLOAT: (np.dtype(np.float32), None),
    ComponentType.DOUBLE: (np.dtype(np.float64), None),
}

# (kind, itemsize) -> type, for untagged datasets
_NAIVE_TYPES: dict[tuple[str, int], ComponentType] = {
    ("b", 1): ComponentType.BOOL,
    ("i", 1): ComponentType.CHAR,
    ("u", 1): ComponentType.UCHAR,
    ("i", 2): ComponentType.SHORT,
    ("u", 2): ComponentType.USHORT,
    ("i", 4): ComponentType.INT,
    ("u", 4): ComponentType.UINT,
    ("i", 8): ComponentType.LONG,
    ("u", 8): ComponentType.ULONG,
    ("f", 4): ComponentType.FLOAT,
    ("f", 8): ComponentType.DOUBLE,
}

_TAGGED_TYPES: dict[str, ComponentType] = {
    IS_BOOL: ComponentType.BOOL,
    IS_LONG: ComponentType.LONG,
    IS_UNSIGNED_LONG: ComponentType.ULONG,
    IS_LLONG: ComponentType.LONGLONG,
    IS_ULLONG: ComponentType.ULONGLONG,
}


def encode_type(component: ComponentType) -> tuple[np.dtype, str | None]:
    """Return the on-disk dtype and the tag (if any) for a host type."""
    try:
        return _DISK_TYPES[ComponentType(component)]
    except (KeyError, ValueError):
        raise UnsupportedTypeError(f"Unsupported component type: {component!r}") from None


def encode_pixel_type(component: ComponentType) -> tuple[np.dtype, str | None]:
    """Like :func:`encode_type`, restricted to types valid for voxel data."""
    component = ComponentType(component)
    if not component.is_pixel_type:
        raise UnsupportedTypeError(f"{component.name} is not a valid pixel component type")
    return encode_type(component)


def decode_type(dtype: np.dtype, tags: tuple[str, ...] | list[str] = ()) -> ComponentType:
    """Return the host type for an on-disk dtype and the tags found next to it.

    Raises:
        UnsupportedTypeError: If the dtype is outside the supported set.
    """
    dtype = np.dtype(dtype)

    if h5py.check_string_dtype(dtype) is not None:
        return ComponentType.STRING

    if dtype.kind in "biu":
        for tag in TAGS:
            if tag in tags:
                return _TAGGED_TYPES[tag]

    try:
        return _NAIVE_TYPES[(dtype.kind, dtype.itemsize)]
    except KeyError:
        raise UnsupportedTypeError(f"Unsupported HDF5 data type: {dtype}") from None


def read_tags(obj: h5py.HLObject) -> tuple[str, ...]:
    """Return the disambiguation tags attached to a dataset or group."""
    return tuple(tag for tag in TAGS if tag in obj.attrs)


def write_tag(obj: h5py.HLObject, tag: str) -> None:
    obj.attrs.create(tag, np.ones(1, dtype=np.bool_))


def component_from_dtype(dtype: np.dtype) -> ComponentType:
    """Host type for an in-memory numpy dtype."""
    dtype = np.dtype(dtype)
    if dtype.kind in "US":
        return ComponentType.STRING
    try:
        return _NAIVE_TYPES[(dtype.kind, dtype.itemsize)]
    except KeyError:
        raise UnsupportedTypeError(f"Unsupported numpy dtype: {dtype}") from None
