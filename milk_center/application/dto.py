"""Application-level request DTOs for the entry forms."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any


@dataclass(slots=True, frozen=True)
class CollectionRequest:
    user_id: str
    date: date
    time: str
    liters: str | Decimal
    fat_percentage: str | Decimal
    amount: str | Decimal

    def form_values(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "liters": self.liters,
            "fatPercentage": self.fat_percentage,
            "amount": self.amount,
        }


@dataclass(slots=True, frozen=True)
class AdvanceRequest:
    user_id: str
    amount: str | Decimal
    description: str
    date: datetime | None = None

    def form_values(self) -> dict[str, Any]:
        return {"userId": self.user_id, "amount": self.amount, "description": self.description.strip()}
