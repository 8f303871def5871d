"""Base model and enum for hydrai data models.

Every model inherits from :class:`HydraiBaseModel` which is frozen and
ignores unknown keys, so snapshots can be handed to readers without
copying.  Categorical enums inherit from :class:`HydraiEnum`, which adds
an ``UNKNOWN`` member at ``-1`` and a ``_missing_`` hook that returns
``UNKNOWN`` for any value without a mapped member.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict


class HydraiEnum(enum.IntEnum):
    """Base for categorical enums.

    Every subclass **must** define ``UNKNOWN = -1``.
    """

    @classmethod
    def _missing_(cls, value: object) -> HydraiEnum:
        # pylint: disable=no-member
        if hasattr(cls, "UNKNOWN"):
            unknown: HydraiEnum = cls.UNKNOWN  # type: ignore[attr-defined]
            return unknown
        return next(iter(cls))


class HydraiBaseModel(BaseModel):
    """Base for hydrai models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )
