"""Pydantic models for image geometry and region selection."""

from __future__ import annotations

from typing import Any

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator

from h5container.errors import DimensionMismatchError
from h5container.storage.types import ComponentType


def _as_int_list(v: Any) -> Any:
    if isinstance(v, (tuple, np.ndarray)):
        return [int(x) for x in v]
    return v


class ImageDescriptor(BaseModel):
    """Geometry and pixel type of an N-dimensional image.

    All per-axis vectors are in host order (fastest-moving axis first).
    Spacing, origin and direction default to ones, zeros and identity.
    """

    dimensions: list[int]
    spacing: list[float] = Field(default_factory=list)
    origin: list[float] = Field(default_factory=list)
    direction: list[list[float]] = Field(default_factory=list)
    number_of_components: int = 1
    component_type: ComponentType = ComponentType.UCHAR

    @field_validator("dimensions", mode="before")
    @classmethod
    def coerce_dimensions(cls, v: Any) -> Any:
        return _as_int_list(v)

    @field_validator("spacing", "origin", mode="before")
    @classmethod
    def coerce_vector(cls, v: Any) -> Any:
        if isinstance(v, (tuple, np.ndarray)):
            return [float(x) for x in v]
        return v

    @field_validator("direction", mode="before")
    @classmethod
    def coerce_direction(cls, v: Any) -> Any:
        if isinstance(v, (tuple, np.ndarray)):
            return np.asarray(v, dtype=np.float64).tolist()
        return v

    @model_validator(mode="after")
    def fill_defaults(self) -> ImageDescriptor:
        n = len(self.dimensions)
        if not self.spacing:
            self.spacing = [1.0] * n
        if not self.origin:
            self.origin = [0.0] * n
        if not self.direction:
            self.direction = np.eye(n).tolist()

        if len(self.spacing) != n:
            raise ValueError(f"Spacing has {len(self.spacing)} values, expected {n}")
        if len(self.origin) != n:
            raise ValueError(f"Origin has {len(self.origin)} values, expected {n}")
        if len(self.direction) != n or any(len(row) != n for row in self.direction):
            raise ValueError(f"Direction must be {n}x{n}")
        if self.number_of_components < 1:
            raise ValueError("number_of_components must be at least 1")
        return self

    @property
    def number_of_dimensions(self) -> int:
        return len(self.dimensions)

    @property
    def direction_matrix(self) -> np.ndarray:
        return np.asarray(self.direction, dtype=np.float64)

    @property
    def number_of_pixels(self) -> int:
        return int(np.prod(self.dimensions, dtype=np.int64))

    def largest_region(self) -> ImageRegion:
        return ImageRegion(index=[0] * self.number_of_dimensions, size=list(self.dimensions))


class ImageRegion(BaseModel):
    """A box of voxels: start ``index`` and ``size`` per host axis."""

    index: list[int]
    size: list[int]

    @field_validator("index", "size", mode="before")
    @classmethod
    def coerce_ints(cls, v: Any) -> Any:
        return _as_int_list(v)

    @model_validator(mode="after")
    def check_lengths(self) -> ImageRegion:
        if len(self.index) != len(self.size):
            raise ValueError(
                f"Region index has {len(self.index)} axes but size has {len(self.size)}"
            )
        return self

    @property
    def dimension(self) -> int:
        return len(self.size)


class RegionOverrides(BaseModel):
    """Explicit dataset offset/size/stride, replacing the requested region.

    A field left as ``None`` is not in use. Each vector must have one entry
    per image dimension, in host order.
    """

    offset: list[int] | None = None
    size: list[int] | None = None
    stride: list[int] | None = None

    @field_validator("offset", "size", "stride", mode="before")
    @classmethod
    def coerce_ints(cls, v: Any) -> Any:
        return _as_int_list(v)

    @field_validator("stride")
    @classmethod
    def positive_stride(cls, v: list[int] | None) -> list[int] | None:
        if v is not None and any(s < 1 for s in v):
            raise ValueError("stride values must be >= 1")
        return v

    def validate_dimension(self, n: int) -> None:
        """Raise :class:`DimensionMismatchError` if an active override is not length ``n``."""
        for name in ("offset", "size", "stride"):
            vec = getattr(self, name)
            if vec is not None and len(vec) != n:
                raise DimensionMismatchError(f"Invalid {name} dimension: {len(vec)} != {n}")

    @property
    def active(self) -> bool:
        return any(v is not None for v in (self.offset, self.size, self.stride))
