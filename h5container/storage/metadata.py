"""Read and write a :class:`MetaDataDictionary` as an HDF5 group.

Each entry becomes a rank-1 dataset named after its key. Scalars are
1-element datasets, arrays N-element datasets, strings a 1-element
variable-length string dataset. Host types HDF5 cannot tell apart carry a
tag attribute (see :mod:`h5container.storage.types`).
"""

from __future__ import annotations

import h5py
import numpy as np

from h5container.errors import UnsupportedTypeError
from h5container.metadata import MetaDataDictionary, MetaDataValue
from h5container.storage.format import METADATA_GROUP
from h5container.storage.types import (
    ComponentType,
    decode_type,
    encode_type,
    read_tags,
    write_tag,
)
from h5container.utils.log import get_logger

logger = get_logger(__name__)


def write_value(group: h5py.Group, name: str, item: MetaDataValue) -> h5py.Dataset:
    """Create one metadata dataset under ``group``."""
    if item.component is ComponentType.STRING:
        return group.create_dataset(
            name, shape=(1,), dtype=h5py.string_dtype(encoding="utf-8"), data=[item.value]
        )

    disk_dtype, tag = encode_type(item.component)
    ds = group.create_dataset(name, data=item.to_numpy().astype(disk_dtype))
    if tag is not None:
        write_tag(ds, tag)
    return ds


def write_metadata(parent: h5py.Group, dictionary: MetaDataDictionary) -> h5py.Group:
    """Write every entry of ``dictionary`` into a new metadata subgroup.

    Entries are written in dictionary order. The group tracks creation order
    so that reading preserves it.
    """
    group = parent.create_group(METADATA_GROUP, track_order=True)
    for key, item in dictionary.items():
        logger.debug("Writing metadata entry", key=key, value=repr(item))
        write_value(group, key, item)
    return group


def read_value(ds: h5py.Dataset) -> MetaDataValue | None:
    """Decode one metadata dataset.

    Returns None for entries that cannot be represented: rank other than 1
    or an unsupported dtype. An empty string dataset decodes as ``""``.
    """
    if ds.ndim != 1:
        logger.debug("Skipping metadata entry with unsupported rank", name=ds.name, rank=ds.ndim)
        return None

    try:
        component = decode_type(ds.dtype, read_tags(ds))
    except UnsupportedTypeError:
        logger.debug(
            "Skipping metadata entry with unsupported type", name=ds.name, dtype=str(ds.dtype)
        )
        return None

    if component is ComponentType.STRING:
        if ds.shape[0] == 0:
            return MetaDataValue.string("")
        return MetaDataValue.string(ds.asstr()[0])

    data = np.asarray(ds[()])
    if component is ComponentType.BOOL:
        data = data != 0
    if data.shape[0] == 1:
        return MetaDataValue.scalar(component, data[0])
    return MetaDataValue.array(component, data)


def read_metadata(parent: h5py.Group) -> MetaDataDictionary:
    """Rebuild the dictionary stored in ``parent``'s metadata subgroup."""
    group = parent[METADATA_GROUP]
    dictionary = MetaDataDictionary()
    for name, node in group.items():
        if not isinstance(node, h5py.Dataset):
            continue
        item = read_value(node)
        if item is not None:
            logger.debug("Read metadata entry", key=name, value=repr(item))
            dictionary[name] = item
    return dictionary
