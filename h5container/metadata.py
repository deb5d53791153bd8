"""Typed key/value metadata attached to an image.

Each value carries an explicit :class:`ComponentType` tag, so writing never
has to guess which host type a value was meant to be:

    meta = MetaDataDictionary()
    meta["PatientName"] = "anon"                          # STRING
    meta["SliceCount"] = 12                               # LONG
    meta.encapsulate("Echo", 3, ComponentType.SHORT)      # explicit tag
    meta["Window"] = np.array([40.0, 400.0], np.float32)  # FLOAT array
"""

from __future__ import annotations

from collections.abc import Iterator, MutableMapping
from dataclasses import dataclass
from typing import Any, Union

import numpy as np

from h5container.errors import UnsupportedTypeError
from h5container.storage.types import ComponentType, component_from_dtype

Scalar = Union[bool, int, float, str]


def _check_range(component: ComponentType, values: list[Any]) -> None:
    # older numpy wraps out-of-range Python ints instead of raising
    if component.dtype.kind not in "iu":
        return
    info = np.iinfo(component.dtype)
    for v in values:
        if isinstance(v, (int, np.integer)) and not isinstance(v, (bool, np.bool_)):
            if not info.min <= int(v) <= info.max:
                raise UnsupportedTypeError(f"Value {v} out of range for {component.name}")


def _coerce_scalar(component: ComponentType, value: Any) -> Scalar:
    if component is ComponentType.STRING:
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)
    _check_range(component, [value])
    try:
        return np.asarray(value, dtype=component.dtype).item()
    except (OverflowError, ValueError, TypeError) as e:
        raise UnsupportedTypeError(
            f"Value {value!r} cannot be stored as {component.name}"
        ) from e


@dataclass(frozen=True)
class MetaDataValue:
    """A metadata value and the host type it represents.

    ``value`` is a Python scalar, a ``str``, or (for arrays) a tuple of
    Python scalars. Values are normalised through the host dtype so that
    what is read back compares equal to what was written.
    """

    component: ComponentType
    value: Scalar | tuple[Scalar, ...]
    is_array: bool = False

    @classmethod
    def scalar(cls, component: ComponentType, value: Any) -> MetaDataValue:
        component = ComponentType(component)
        return cls(component, _coerce_scalar(component, value))

    @classmethod
    def array(cls, component: ComponentType, values: Any) -> MetaDataValue:
        component = ComponentType(component)
        if component is ComponentType.STRING:
            raise UnsupportedTypeError("String arrays are not supported as metadata")
        if isinstance(values, (list, tuple)):
            _check_range(component, list(values))
        try:
            arr = np.asarray(values, dtype=component.dtype)
        except (OverflowError, ValueError, TypeError) as e:
            raise UnsupportedTypeError(
                f"Values cannot be stored as {component.name} array"
            ) from e
        if arr.ndim != 1:
            raise UnsupportedTypeError(f"Metadata arrays must be 1-D, got {arr.ndim}-D")
        return cls(component, tuple(arr.tolist()), is_array=True)

    @classmethod
    def string(cls, value: str | bytes) -> MetaDataValue:
        return cls.scalar(ComponentType.STRING, value)

    @classmethod
    def infer(cls, value: Any) -> MetaDataValue:
        """Build a tagged value from a plain Python or numpy value."""
        if isinstance(value, MetaDataValue):
            return value
        # bool before int: bool is an int subclass
        if isinstance(value, (bool, np.bool_)):
            return cls.scalar(ComponentType.BOOL, value)
        if isinstance(value, (str, bytes)):
            return cls.string(value)
        if isinstance(value, np.generic):
            return cls.scalar(component_from_dtype(value.dtype), value)
        if isinstance(value, int):
            return cls.scalar(ComponentType.LONG, value)
        if isinstance(value, float):
            return cls.scalar(ComponentType.DOUBLE, value)
        if isinstance(value, (np.ndarray, list, tuple)):
            arr = np.asarray(value)
            component = component_from_dtype(arr.dtype)
            if component is ComponentType.STRING:
                raise UnsupportedTypeError("String arrays are not supported as metadata")
            return cls.array(component, arr)
        raise UnsupportedTypeError(f"Unsupported metadata value type: {type(value).__name__}")

    def to_numpy(self) -> np.ndarray:
        """Return the value as a 1-D array in its host dtype."""
        if self.component is ComponentType.STRING:
            return np.array([self.value], dtype=object)
        values = self.value if self.is_array else (self.value,)
        return np.asarray(values, dtype=self.component.dtype).reshape(-1)

    def __repr__(self) -> str:
        kind = f"{self.component.name}[]" if self.is_array else self.component.name
        return f"MetaDataValue({kind}, {self.value!r})"


class MetaDataDictionary(MutableMapping):
    """Ordered mapping from key to :class:`MetaDataValue`.

    Assigning a plain value infers its tag with :meth:`MetaDataValue.infer`.
    """

    def __init__(self, items: Any = None, **kwargs: Any) -> None:
        self._items: dict[str, MetaDataValue] = {}
        if items is not None:
            self.update(items)
        if kwargs:
            self.update(kwargs)

    def __getitem__(self, key: str) -> MetaDataValue:
        return self._items[key]

    def __setitem__(self, key: str, value: Any) -> None:
        if not isinstance(key, str) or not key:
            raise KeyError(f"Metadata keys must be non-empty strings, got {key!r}")
        # each key becomes one HDF5 link name
        if "/" in key:
            raise KeyError(f"Metadata keys must not contain '/', got {key!r}")
        self._items[key] = MetaDataValue.infer(value)

    def __delitem__(self, key: str) -> None:
        del self._items[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, MetaDataDictionary):
            return list(self._items.items()) == list(other._items.items())
        return NotImplemented

    def encapsulate(self, key: str, value: Any, component: ComponentType | None = None) -> None:
        """Store ``value`` under ``key`` with an explicit host type."""
        if component is None:
            self[key] = value
        elif isinstance(value, (np.ndarray, list, tuple)):
            self[key] = MetaDataValue.array(component, value)
        else:
            self[key] = MetaDataValue.scalar(component, value)

    def get_value(self, key: str, default: Any = None) -> Any:
        """Return the raw Python value stored under ``key``."""
        if key not in self._items:
            return default
        return self._items[key].value

    def to_dict(self) -> dict[str, Any]:
        return {key: item.value for key, item in self._items.items()}

    def __repr__(self) -> str:
        return f"MetaDataDictionary({self._items!r})"
