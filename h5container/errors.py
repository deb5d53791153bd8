"""Exceptions raised by h5container.

Every error derives from :class:`HDF5ContainerError` and from the builtin
exception closest in meaning, so callers can catch either.
"""

from __future__ import annotations


class HDF5ContainerError(Exception):
    """Base class for all h5container errors."""


class NotFoundError(HDF5ContainerError, FileNotFoundError):
    """A file, group, dataset or metadata group is missing where required."""


class AlreadyExistsError(HDF5ContainerError, FileExistsError):
    """A write would replace existing data without ``overwrite`` set."""


class DimensionMismatchError(HDF5ContainerError, ValueError):
    """A vector's length disagrees with the image dimensionality."""


class UnsupportedTypeError(HDF5ContainerError, TypeError):
    """A scalar type outside the supported component types."""


class MalformedLayoutError(HDF5ContainerError, ValueError):
    """An attribute or dataset does not have the expected shape."""


class ContainerIOError(HDF5ContainerError, OSError):
    """The HDF5 library reported an I/O failure."""
