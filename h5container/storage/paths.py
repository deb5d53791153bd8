"""Group path helpers for HDF5 files."""

from __future__ import annotations

import h5py

from h5container.errors import AlreadyExistsError
from h5container.utils.log import get_logger

logger = get_logger(__name__)


def split_path(path: str) -> list[str]:
    """Split a slash-separated path into its non-empty segments."""
    return [segment for segment in path.split("/") if segment]


def join_path(*parts: str) -> str:
    """Join path fragments into one absolute path, e.g. ``("/a/", "b") -> "/a/b"``."""
    segments: list[str] = []
    for part in parts:
        segments.extend(split_path(part))
    return "/" + "/".join(segments)


def path_exists(h5file: h5py.File, path: str) -> bool:
    """Return True if ``path`` names any object in the file.

    Never raises: a failing lookup (bad intermediate node, closed file)
    counts as "does not exist".
    """
    try:
        return join_path(path) in h5file
    except Exception:
        return False


def ensure_group(h5file: h5py.File, path: str) -> h5py.Group:
    """Return the group at ``path``, creating missing intermediate groups.

    Existing groups are reused, so calling this twice is harmless.

    Raises:
        AlreadyExistsError: If a path segment exists but is not a group.
    """
    group: h5py.Group = h5file["/"]
    incremental = ""
    for segment in split_path(path):
        incremental += "/" + segment
        if segment in group:
            node = group[segment]
            if not isinstance(node, h5py.Group):
                raise AlreadyExistsError(f"{incremental} exists and is not a group")
            group = node
            continue
        group = group.create_group(segment)
        logger.debug("Created group", path=incremental)
    return group
