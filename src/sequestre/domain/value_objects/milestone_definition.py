"""
MilestoneDefinition value object - The hashed part of a milestone.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Union

from sequestre.domain.exceptions import ValidationError
from sequestre.domain.services.units import format_amount, parse_amount

DateLike = Union[datetime, int, float, str]


def normalize_completion_date(value: DateLike) -> datetime:
    """
    Normalize a completion date to an aware UTC datetime.

    Accepts datetimes (naive values are read as UTC), seconds since epoch,
    and ISO-8601 strings.

    Raises:
        ValidationError: If the date is non-finite, unparseable or before
            the Unix epoch
    """
    field = "completion_date"

    if isinstance(value, bool):
        raise ValidationError(field, "must be a datetime or epoch seconds")

    if isinstance(value, datetime):
        moment = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    elif isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            raise ValidationError(field, "must be finite")
        try:
            moment = datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise ValidationError(field, f"out of range: {value}")
    elif isinstance(value, str):
        try:
            moment = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(field, f"not an ISO-8601 date: {value!r}")
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
    else:
        raise ValidationError(field, f"unsupported type {type(value).__name__}")

    moment = moment.astimezone(timezone.utc)
    if moment.timestamp() < 0:
        raise ValidationError(field, "must not be before 1970-01-01")

    return moment


@dataclass(frozen=True)
class MilestoneDefinition:
    """
    Value object holding the four fields covered by a commitment hash.

    Business rules:
    - Title is required
    - Amount is a finite, non-negative decimal in native units
    - Completion date is a finite, post-epoch instant (stored in UTC)
    - Immutable: changing any field changes the commitment hash
    """

    title: str
    description: str
    amount: Decimal
    completion_date: datetime

    def __post_init__(self):
        """Validate and normalize fields on creation."""
        if not isinstance(self.title, str) or not self.title.strip():
            raise ValidationError("title", "cannot be empty")

        if self.description is None:
            object.__setattr__(self, "description", "")
        elif not isinstance(self.description, str):
            raise ValidationError("description", "must be a string")

        object.__setattr__(self, "amount", parse_amount(self.amount, "amount"))
        object.__setattr__(
            self,
            "completion_date",
            normalize_completion_date(self.completion_date),
        )

    @property
    def completion_timestamp(self) -> int:
        """Completion date as whole seconds since epoch."""
        return math.floor(self.completion_date.timestamp())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MilestoneDefinition":
        """
        Build definition from a camelCase or snake_case mapping.

        Raises:
            ValidationError: If a required key is missing
        """
        if not isinstance(data, dict):
            raise ValidationError("milestone", "must be an object")

        completion = data.get("completionDate", data.get("completion_date"))
        for key, value in (
            ("title", data.get("title")),
            ("amount", data.get("amount")),
            ("completion_date", completion),
        ):
            if value is None:
                raise ValidationError(key, "is required")

        return cls(
            title=data["title"],
            description=data.get("description", ""),
            amount=data["amount"],
            completion_date=completion,
        )

    def to_dict(self) -> dict:
        """Convert to the JSON shape accepted by ``from_dict``."""
        return {
            "title": self.title,
            "description": self.description,
            "amount": format_amount(self.amount),
            "completionDate": self.completion_date.isoformat(),
        }
