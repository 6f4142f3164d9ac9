"""Application services orchestrating collection, advance and admin workflows."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Sequence

from milk_center.config import SETTINGS
from milk_center.domain import access
from milk_center.domain.errors import FarmerInactiveError, FormValidationError
from milk_center.domain.events import EventChannel, EventName
from milk_center.domain.models import AdvanceEntry, CollectionEntry, FatRate, Farmer, Helper, Role
from milk_center.domain.rates import RateTable, as_decimal, detect_manual_edit, resolve_exact
from milk_center.domain.repositories import (
    AdvanceRepository,
    CollectionRepository,
    FarmerRepository,
    FatRateRepository,
    HelperRepository,
)
from milk_center.domain.validation import (
    ADVANCE_RULES,
    COLLECTION_RULES,
    FARMER_RULES,
    ensure_valid,
    fat_rate_rules,
    helper_rules,
)
from milk_center.timeutils import now_local

from .dto import AdvanceRequest, CollectionRequest
from .session import SessionGuard

logger = logging.getLogger(__name__)


def _signed_in(role: Role | None) -> bool:
    return role is not None


@dataclass(slots=True)
class CollectionContext:
    guard: SessionGuard
    collections: CollectionRepository
    fat_rates: FatRateRepository
    events: EventChannel


@dataclass(slots=True)
class AdvanceContext:
    guard: SessionGuard
    advances: AdvanceRepository
    events: EventChannel


@dataclass(slots=True)
class AdministrationContext:
    guard: SessionGuard
    farmers: FarmerRepository
    events: EventChannel
    helpers: HelperRepository | None = None


def _ensure_active(farmer: Farmer, action: str, kind: str) -> None:
    if not farmer.accepts_entries:
        raise FarmerInactiveError(
            f"Cannot {action} {kind} for deactivated farmer. Please contact admin to reactivate the account."
        )


def _fat_or_none(value: Any) -> Decimal | None:
    try:
        return as_decimal(value)
    except (TypeError, ValueError):
        return None


class _CollectionWriter:
    def __init__(self, context: CollectionContext) -> None:
        self._context = context

    def _build_entry(self, request: CollectionRequest, farmer: Farmer, table: RateTable | None) -> CollectionEntry:
        ensure_valid(request.form_values(), COLLECTION_RULES)
        if request.user_id != farmer.id:
            raise FormValidationError({"userId": f"Entry is for {request.user_id}, not {farmer.name}"})
        liters = as_decimal(request.liters)
        fat = as_decimal(request.fat_percentage)
        amount = as_decimal(request.amount)

        if table is None:
            table = self._context.fat_rates.load()
        rate = resolve_exact(fat, table)

        return CollectionEntry(
            user_id=farmer.id,
            user_name=farmer.name,
            date=request.date,
            time=request.time,
            liters=liters,
            fat_percentage=fat,
            rate=rate,
            amount=amount,
            is_manually_edited=detect_manual_edit(amount, liters, rate, SETTINGS.manual_edit_tolerance),
        )


class RecordCollectionUseCase(_CollectionWriter):
    """Persist a new collection at the exact configured rate."""

    def execute(self, request: CollectionRequest, farmer: Farmer, table: RateTable | None = None) -> CollectionEntry:
        self._context.guard.require(_signed_in, "Please log in to record collections")
        _ensure_active(farmer, "add", "collection")
        entry = self._build_entry(request, farmer, table)
        saved = self._context.collections.create(entry)
        logger.info(
            "Recorded collection for %s: %s L at %s%% fat, amount %s%s",
            farmer.name,
            entry.liters,
            entry.fat_percentage,
            entry.amount,
            " (manual)" if entry.is_manually_edited else "",
        )
        self._context.events.emit(EventName.COLLECTION_UPDATED, {"action": "created", "id": saved.id})
        return saved


class UpdateCollectionUseCase(_CollectionWriter):
    def execute(
        self,
        collection_id: str,
        request: CollectionRequest,
        farmer: Farmer,
        table: RateTable | None = None,
    ) -> CollectionEntry:
        self._context.guard.require(access.can_modify_data, "You do not have permission to edit collections")
        _ensure_active(farmer, "update", "collection")
        entry = self._build_entry(request, farmer, table)
        saved = self._context.collections.update(collection_id, entry)
        self._context.events.emit(EventName.COLLECTION_UPDATED, {"action": "updated", "id": collection_id})
        return saved


class DeleteCollectionUseCase:
    def __init__(self, context: CollectionContext) -> None:
        self._context = context

    def execute(self, collection_id: str) -> None:
        self._context.guard.require(access.can_modify_data, "You do not have permission to delete collections")
        self._context.collections.delete(collection_id)
        self._context.events.emit(EventName.COLLECTION_UPDATED, {"action": "deleted", "id": collection_id})


class RecordAdvanceUseCase:
    def __init__(self, context: AdvanceContext) -> None:
        self._context = context

    def execute(self, request: AdvanceRequest, farmer: Farmer) -> AdvanceEntry:
        self._context.guard.require(
            access.can_access_advanced_features, "You do not have permission to record advances"
        )
        ensure_valid(request.form_values(), ADVANCE_RULES)
        _ensure_active(farmer, "add", "advance")

        entry = AdvanceEntry(
            user_id=farmer.id,
            user_name=farmer.name,
            amount=as_decimal(request.amount),
            date=request.date or now_local(),
            description=request.description.strip(),
        )
        saved = self._context.advances.create(entry)
        logger.info(
            "Recorded %s of %s for %s",
            "repayment" if entry.is_repayment else "advance",
            abs(entry.amount),
            farmer.name,
        )
        self._context.events.emit(EventName.DATA_REFRESH_NEEDED, {"source": "advances"})
        return saved


class FatRateEditor:
    """Working copy of the rate table; mutations stay local until :meth:`save`."""

    def __init__(self, guard: SessionGuard, repository: FatRateRepository) -> None:
        self._guard = guard
        self._repository = repository
        self._table = RateTable()

    @property
    def table(self) -> RateTable:
        return self._table

    @property
    def entries(self) -> list[FatRate]:
        return self._table.entries

    def load(self) -> RateTable:
        self._table = self._repository.load()
        return self._table

    def _require(self) -> None:
        self._guard.require(access.can_access_advanced_features, "You do not have permission to manage fat rates")

    def add(self, fat_percentage: Any, rate: Any) -> FatRate:
        self._require()
        ensure_valid({"fatPercentage": fat_percentage, "rate": rate}, fat_rate_rules(self._table))
        entry = FatRate(as_decimal(fat_percentage), as_decimal(rate))
        self._table.upsert(entry)
        return entry

    def edit(self, old_fat_percentage: Any, fat_percentage: Any, rate: Any) -> FatRate:
        self._require()
        old = _fat_or_none(old_fat_percentage)
        if old is None or old not in self._table:
            raise FormValidationError({"fatPercentage": f"No rate configured for {old_fat_percentage}%"})
        ensure_valid({"fatPercentage": fat_percentage, "rate": rate}, fat_rate_rules(self._table, editing=old))
        entry = FatRate(as_decimal(fat_percentage), as_decimal(rate))
        self._table.replace(old, entry)
        return entry

    def upsert(self, fat_percentage: Any, rate: Any) -> bool:
        """Add or overwrite; returns True when an existing rate was replaced."""
        self._require()
        fat = _fat_or_none(fat_percentage)
        editing = fat if fat is not None and fat in self._table else None
        ensure_valid({"fatPercentage": fat_percentage, "rate": rate}, fat_rate_rules(self._table, editing=editing))
        return self._table.upsert(FatRate(as_decimal(fat_percentage), as_decimal(rate)))

    def delete(self, fat_percentage: Any) -> bool:
        self._require()
        fat = _fat_or_none(fat_percentage)
        return fat is not None and self._table.remove(fat)

    def save(self) -> RateTable:
        self._require()
        self._table = self._repository.save_bulk(self._table)
        logger.info("Saved %d fat rates", len(self._table))
        return self._table


class FarmerAdministration:
    def __init__(self, context: AdministrationContext) -> None:
        self._context = context

    def _require_staff(self) -> None:
        self._context.guard.require(access.can_modify_data, "You do not have permission to manage farmers")

    def _helpers(self) -> HelperRepository:
        self._context.guard.require(access.can_manage_helpers, "Only administrators can manage helpers")
        if self._context.helpers is None:
            raise RuntimeError("Helper repository is not configured")
        return self._context.helpers

    def _emit(self, name: EventName, farmer_id: str, **extra: Any) -> None:
        self._context.events.emit(name, {"userId": farmer_id, **extra})
        self._context.events.emit(EventName.DATA_REFRESH_NEEDED, {"source": "users"})

    # -- farmers ---------------------------------------------------------

    def list_farmers(self, search: str | None = None) -> Sequence[Farmer]:
        return self._context.farmers.list_farmers(search)

    def active_farmers(self) -> list[Farmer]:
        return [farmer for farmer in self.list_farmers() if farmer.accepts_entries]

    def create(self, fields: dict[str, Any]) -> Farmer:
        self._require_staff()
        ensure_valid(fields, FARMER_RULES)
        farmer = self._context.farmers.create(fields)
        self._emit(EventName.USER_UPDATED, farmer.id, action="created")
        return farmer

    def update(self, farmer_id: str, fields: dict[str, Any]) -> Farmer:
        self._require_staff()
        ensure_valid(fields, FARMER_RULES)
        farmer = self._context.farmers.update(farmer_id, fields)
        self._emit(EventName.USER_UPDATED, farmer_id, action="updated")
        return farmer

    def delete(self, farmer_id: str) -> None:
        self._require_staff()
        self._context.farmers.delete(farmer_id)
        self._emit(EventName.USER_DELETED, farmer_id)

    def deactivate(self, farmer_id: str, reason: str | None = None) -> Farmer:
        self._require_staff()
        farmer = self._context.farmers.deactivate(farmer_id, (reason or "").strip() or None)
        logger.info("Deactivated farmer %s", farmer_id)
        self._emit(EventName.USER_DEACTIVATED, farmer_id, reason=farmer.deactivation_reason)
        return farmer

    def reactivate(self, farmer_id: str) -> Farmer:
        self._require_staff()
        farmer = self._context.farmers.reactivate(farmer_id)
        logger.info("Reactivated farmer %s", farmer_id)
        self._emit(EventName.USER_REACTIVATED, farmer_id)
        return farmer

    # -- helpers ---------------------------------------------------------

    def list_helpers(self) -> Sequence[Helper]:
        return self._helpers().list_helpers()

    def create_helper(self, fields: dict[str, Any]) -> Helper:
        repository = self._helpers()
        ensure_valid(fields, helper_rules(creating=True))
        return repository.create(fields)

    def update_helper(self, helper_id: str, fields: dict[str, Any]) -> Helper:
        repository = self._helpers()
        ensure_valid(fields, helper_rules(creating=False))
        if not fields.get("password"):
            fields = {key: value for key, value in fields.items() if key != "password"}
        return repository.update(helper_id, fields)

    def delete_helper(self, helper_id: str) -> None:
        self._helpers().delete(helper_id)

    def extend_helper_password(self, helper_id: str) -> Helper:
        return self._helpers().extend_password(helper_id)

    def toggle_helper_status(self, helper_id: str) -> Helper:
        return self._helpers().toggle_status(helper_id)


