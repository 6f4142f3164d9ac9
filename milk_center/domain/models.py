"""Domain models for the milk collection books.

These dataclasses capture the canonical client-side shape of the records the
backend stores. Quantities are ``Decimal`` throughout.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"
    HELPER = "helper"


class AmountMode(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


@dataclass(frozen=True)
class Principal:
    """The authenticated operator, as stored in the session profile."""

    username: str
    role: Role

    def to_profile(self) -> dict[str, str]:
        return {"username": self.username, "role": self.role.value}

    @classmethod
    def from_profile(cls, data: dict[str, object]) -> "Principal":
        return cls(username=str(data["username"]), role=Role(str(data["role"])))


@dataclass(frozen=True)
class FatRate:
    fat_percentage: Decimal
    rate: Decimal


@dataclass(frozen=True)
class Farmer:
    """A milk supplier. Collections and advances reference farmers by id."""

    id: str
    name: str
    phone_number: str = ""
    address: str = ""
    is_active: bool | None = True
    deactivated_at: datetime | None = None
    deactivation_reason: str | None = None
    created_at: datetime | None = None

    @property
    def accepts_entries(self) -> bool:
        # Only an explicit False blocks; records predating the flag carry None.
        return self.is_active is not False


@dataclass(frozen=True)
class Helper:
    id: str
    name: str
    username: str
    phone_number: str
    is_active: bool
    password_expires_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str | None = None


@dataclass(frozen=True)
class CollectionEntry:
    """One farmer's milk drop-off.

    ``rate`` is snapshotted when the entry is submitted and never recomputed
    from a later rate table.
    """

    user_id: str
    user_name: str
    date: date
    time: str
    liters: Decimal
    fat_percentage: Decimal
    rate: Decimal
    amount: Decimal
    is_manually_edited: bool = False
    id: str | None = None


@dataclass(frozen=True)
class AdvanceEntry:
    """Signed cash movement: positive is an advance, negative a repayment."""

    user_id: str
    user_name: str
    amount: Decimal
    date: datetime
    description: str
    id: str | None = None

    @property
    def is_repayment(self) -> bool:
        return self.amount < 0
