"""Repository interfaces anchoring the domain layer."""
from __future__ import annotations

from datetime import date
from typing import Any, Protocol, Sequence

from .models import AdvanceEntry, CollectionEntry, Farmer, Helper, Principal
from .rates import RateTable


class FatRateRepository(Protocol):
    def load(self) -> RateTable:
        ...

    def save_bulk(self, table: RateTable) -> RateTable:
        ...


class CollectionRepository(Protocol):
    def list_collections(
        self,
        user_id: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> Sequence[CollectionEntry]:
        ...

    def create(self, entry: CollectionEntry) -> CollectionEntry:
        ...

    def update(self, collection_id: str, entry: CollectionEntry) -> CollectionEntry:
        ...

    def delete(self, collection_id: str) -> None:
        ...


class AdvanceRepository(Protocol):
    def list_advances(self, user_id: str | None = None) -> Sequence[AdvanceEntry]:
        ...

    def create(self, entry: AdvanceEntry) -> AdvanceEntry:
        ...


class FarmerRepository(Protocol):
    def list_farmers(self, search: str | None = None) -> Sequence[Farmer]:
        ...

    def get(self, farmer_id: str) -> Farmer:
        ...

    def create(self, fields: dict[str, Any]) -> Farmer:
        ...

    def update(self, farmer_id: str, fields: dict[str, Any]) -> Farmer:
        ...

    def delete(self, farmer_id: str) -> None:
        ...

    def deactivate(self, farmer_id: str, reason: str | None = None) -> Farmer:
        ...

    def reactivate(self, farmer_id: str) -> Farmer:
        ...


class HelperRepository(Protocol):
    def list_helpers(self) -> Sequence[Helper]:
        ...

    def create(self, fields: dict[str, Any]) -> Helper:
        ...

    def update(self, helper_id: str, fields: dict[str, Any]) -> Helper:
        ...

    def delete(self, helper_id: str) -> None:
        ...

    def extend_password(self, helper_id: str) -> Helper:
        ...

    def toggle_status(self, helper_id: str) -> Helper:
        ...


class SessionStore(Protocol):
    """Durable client-side slot holding the profile and the bearer token."""

    def load_principal(self) -> Principal | None:
        ...

    def load_token(self) -> str | None:
        ...

    def save(self, principal: Principal, token: str) -> None:
        ...

    def save_token(self, token: str) -> None:
        ...

    def clear(self) -> None:
        ...
