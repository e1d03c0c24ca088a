"""
Base model classes and mixins.
"""

from datetime import datetime, timezone
from typing import Any, ClassVar, Mapping, Optional

from sqlalchemy import DateTime, inspect
from sqlalchemy.orm import Mapped, mapped_column

from spacehub.core.exceptions import ValidationError

IMMUTABLE_FIELDS = frozenset({"id", "created_at", "updated_at"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def start_of_day(moment: Optional[datetime] = None) -> datetime:
    moment = moment or utcnow()
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_month(moment: Optional[datetime] = None) -> datetime:
    return start_of_day(moment).replace(day=1)


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


class MutableFieldsMixin:
    """
    Explicit list of columns a caller may replace or patch.

    Identity and creation time are never part of ``mutable_fields``, so
    neither full updates nor patches can overwrite them.
    """

    mutable_fields: ClassVar[tuple[str, ...]] = ()

    def apply_mutable_fields(self, source: Any) -> None:
        """
        Copy the mutable columns ``source`` carries a value for onto this row.

        Column defaults only fill in at INSERT, so a column never set on a
        transient ``source`` keeps the stored value.
        """
        assigned = inspect(source).dict
        for name in self.mutable_fields:
            if name in assigned:
                setattr(self, name, assigned[name])

    def apply_changes(self, changes: Mapping[str, Any]) -> list[str]:
        """
        Apply a partial update.

        Immutable keys are ignored; unknown keys are rejected.

        Returns:
            Names of the fields that were applied
        """
        unknown = [
            key for key in changes
            if key not in self.mutable_fields and key not in IMMUTABLE_FIELDS
        ]
        if unknown:
            raise ValidationError(
                f"{type(self).__name__} has no mutable field(s): {', '.join(sorted(unknown))}",
                "Request contains fields that cannot be changed.",
            )

        applied = []
        for key, value in changes.items():
            if key in IMMUTABLE_FIELDS:
                continue
            setattr(self, key, value)
            applied.append(key)
        return applied
