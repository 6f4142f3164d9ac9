"""Operational report figures computed from collection and advance records."""
from __future__ import annotations

import calendar
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Literal, Sequence

from milk_center.timeutils import is_am

from .models import AdvanceEntry, CollectionEntry, Farmer

_ZERO = Decimal("0")

RangePreset = Literal["week", "month", "lastmonth", "quarter", "year", "custom"]


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def previous(self) -> "DateRange":
        """The period of equal length ending the day before ``start``."""
        end = self.start - timedelta(days=1)
        return DateRange(end - timedelta(days=self.days - 1), end)


def date_range_for(
    preset: RangePreset,
    today: date,
    custom_start: date | None = None,
    custom_end: date | None = None,
) -> DateRange:
    if preset == "week":
        return DateRange(today - timedelta(days=today.weekday()), today)
    if preset == "lastmonth":
        last_of_previous = today.replace(day=1) - timedelta(days=1)
        return DateRange(last_of_previous.replace(day=1), last_of_previous)
    if preset == "quarter":
        first_month = (today.month - 1) // 3 * 3 + 1
        return DateRange(date(today.year, first_month, 1), today)
    if preset == "year":
        return DateRange(date(today.year, 1, 1), today)
    if preset == "custom":
        if custom_start is None or custom_end is None:
            raise ValueError("custom range needs both start and end dates")
        return DateRange(custom_start, custom_end)
    return DateRange(today.replace(day=1), today)


@dataclass(frozen=True)
class CollectionFilter:
    date_range: DateRange | None = None
    farmer_id: str | None = None
    search: str = ""
    min_fat: Decimal | None = None
    max_fat: Decimal | None = None
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    min_liters: Decimal | None = None
    max_liters: Decimal | None = None
    collection_type: Literal["all", "auto", "manual"] = "all"
    period: Literal["all", "am", "pm"] = "all"

    def matches(self, entry: CollectionEntry) -> bool:
        if self.date_range is not None and not self.date_range.contains(entry.date):
            return False
        if self.farmer_id and self.farmer_id != "all" and str(entry.user_id) != str(self.farmer_id):
            return False
        if self.search and not _search_hit(entry, self.search):
            return False
        if not _within(entry.fat_percentage, self.min_fat, self.max_fat):
            return False
        if not _within(entry.amount, self.min_amount, self.max_amount):
            return False
        if not _within(entry.liters, self.min_liters, self.max_liters):
            return False
        if self.collection_type == "manual" and not entry.is_manually_edited:
            return False
        if self.collection_type == "auto" and entry.is_manually_edited:
            return False
        if self.period != "all" and entry.time and is_am(entry.time) != (self.period == "am"):
            return False
        return True


def _within(value: Decimal, low: Decimal | None, high: Decimal | None) -> bool:
    return (low is None or value >= low) and (high is None or value <= high)


def _search_hit(entry: CollectionEntry, term: str) -> bool:
    needle = term.lower()
    return (
        needle in entry.user_name.lower()
        or term in entry.date.isoformat()
        or term in str(entry.liters)
        or term in str(entry.fat_percentage)
    )


def filter_collections(entries: Iterable[CollectionEntry], criteria: CollectionFilter) -> list[CollectionEntry]:
    return [entry for entry in entries if criteria.matches(entry)]


def sort_collections(
    entries: Iterable[CollectionEntry],
    sort_by: Literal["date", "amount", "liters", "fat", "farmer"] = "date",
    descending: bool = True,
) -> list[CollectionEntry]:
    keys = {
        "date": lambda e: (e.date, e.time),
        "amount": lambda e: e.amount,
        "liters": lambda e: e.liters,
        "fat": lambda e: e.fat_percentage,
        "farmer": lambda e: e.user_name.lower(),
    }
    return sorted(entries, key=keys[sort_by], reverse=descending)


def _mean(values: Sequence[Decimal]) -> Decimal:
    return sum(values, _ZERO) / len(values) if values else _ZERO


@dataclass(frozen=True)
class CollectionMetrics:
    total_liters: Decimal
    total_amount: Decimal
    total_collections: int
    average_fat: Decimal
    active_farmers: int
    average_amount: Decimal
    average_liters: Decimal
    manual_collections: int
    auto_collections: int

    @property
    def average_rate(self) -> Decimal:
        return self.total_amount / self.total_liters if self.total_liters else _ZERO


def collection_metrics(entries: Sequence[CollectionEntry]) -> CollectionMetrics:
    manual = sum(1 for e in entries if e.is_manually_edited)
    return CollectionMetrics(
        total_liters=sum((e.liters for e in entries), _ZERO),
        total_amount=sum((e.amount for e in entries), _ZERO),
        total_collections=len(entries),
        average_fat=_mean([e.fat_percentage for e in entries]),
        active_farmers=len({e.user_id for e in entries}),
        average_amount=_mean([e.amount for e in entries]),
        average_liters=_mean([e.liters for e in entries]),
        manual_collections=manual,
        auto_collections=len(entries) - manual,
    )


@dataclass(frozen=True)
class Growth:
    amount: Decimal
    liters: Decimal
    collections: Decimal


def _percent_change(current: Decimal, previous: Decimal) -> Decimal:
    return (current - previous) / previous * 100 if previous > 0 else _ZERO


def growth_against_previous(
    entries: Sequence[CollectionEntry], current: CollectionMetrics, period: DateRange
) -> Growth:
    previous = collection_metrics([e for e in entries if period.previous().contains(e.date)])
    return Growth(
        amount=_percent_change(current.total_amount, previous.total_amount),
        liters=_percent_change(current.total_liters, previous.total_liters),
        collections=_percent_change(Decimal(current.total_collections), Decimal(previous.total_collections)),
    )


def active_farmers_since(entries: Iterable[CollectionEntry], today: date, months: int = 2) -> int:
    year, month = today.year, today.month - months
    while month < 1:
        month += 12
        year -= 1
    since = date(year, month, 1)
    return len({e.user_id for e in entries if since <= e.date <= today})


@dataclass(frozen=True)
class FarmerStats:
    farmer: Farmer
    total_liters: Decimal
    total_amount: Decimal
    collections: int
    average_fat: Decimal
    average_liters: Decimal
    average_amount: Decimal
    consistency: int
    quality_score: Decimal
    manual_edits: int
    last_collection: date | None

    @property
    def reliability(self) -> Decimal:
        return Decimal(self.consistency) / 30 * 100


def farmer_statistics(
    farmers: Iterable[Farmer],
    period_entries: Sequence[CollectionEntry],
    all_entries: Sequence[CollectionEntry],
    today: date,
) -> list[FarmerStats]:
    """Per-farmer totals for the period, largest payout first.

    ``consistency`` counts the farmer's collections over the last 30 days
    regardless of the period; ``quality_score`` drops as fat readings vary.
    """
    by_farmer: dict[str, list[CollectionEntry]] = defaultdict(list)
    for entry in period_entries:
        by_farmer[str(entry.user_id)].append(entry)
    cutoff = today - timedelta(days=30)

    stats: list[FarmerStats] = []
    for farmer in farmers:
        own = by_farmer.get(str(farmer.id), [])
        if not own:
            continue
        fats = [e.fat_percentage for e in own]
        avg_fat = _mean(fats)
        variance = _mean([(f - avg_fat) ** 2 for f in fats]) if len(fats) > 1 else _ZERO
        recent = sum(1 for e in all_entries if str(e.user_id) == str(farmer.id) and e.date >= cutoff)
        latest = max(own, key=lambda e: (e.date, e.time))
        stats.append(
            FarmerStats(
                farmer=farmer,
                total_liters=sum((e.liters for e in own), _ZERO),
                total_amount=sum((e.amount for e in own), _ZERO),
                collections=len(own),
                average_fat=avg_fat,
                average_liters=_mean([e.liters for e in own]),
                average_amount=_mean([e.amount for e in own]),
                consistency=recent,
                quality_score=max(_ZERO, Decimal(100) - variance * 10),
                manual_edits=sum(1 for e in own if e.is_manually_edited),
                last_collection=latest.date,
            )
        )
    stats.sort(key=lambda s: s.total_amount, reverse=True)
    return stats


@dataclass
class PeriodStats:
    key: str
    liters: Decimal = _ZERO
    amount: Decimal = _ZERO
    collections: int = 0
    fat_sum: Decimal = _ZERO
    farmer_ids: set[str] = field(default_factory=set)

    @property
    def farmers(self) -> int:
        return len(self.farmer_ids)

    @property
    def average_fat(self) -> Decimal:
        return self.fat_sum / self.collections if self.collections else _ZERO

    @property
    def average_amount(self) -> Decimal:
        return self.amount / self.collections if self.collections else _ZERO

    def add(self, entry: CollectionEntry) -> None:
        self.liters += entry.liters
        self.amount += entry.amount
        self.collections += 1
        self.fat_sum += entry.fat_percentage
        self.farmer_ids.add(str(entry.user_id))


def _bucket(entries: Iterable[CollectionEntry], key) -> list[PeriodStats]:
    buckets: dict[str, PeriodStats] = {}
    for entry in entries:
        label = key(entry)
        buckets.setdefault(label, PeriodStats(label)).add(entry)
    return sorted(buckets.values(), key=lambda s: s.key, reverse=True)


def daily_statistics(entries: Iterable[CollectionEntry]) -> list[PeriodStats]:
    return _bucket(entries, lambda e: e.date.isoformat())


def monthly_statistics(entries: Iterable[CollectionEntry]) -> list[PeriodStats]:
    return _bucket(entries, lambda e: f"{e.date.year}-{e.date.month:02d}")


def month_label(key: str) -> str:
    year, month = key.split("-")
    return f"{calendar.month_name[int(month)]} {year}"


@dataclass(frozen=True)
class AdvanceSummary:
    total_given: Decimal
    total_repaid: Decimal
    transactions: int

    @property
    def outstanding(self) -> Decimal:
        return self.total_given - self.total_repaid


def advance_summary(entries: Iterable[AdvanceEntry]) -> AdvanceSummary:
    given = repaid = _ZERO
    count = 0
    for entry in entries:
        count += 1
        if entry.amount > 0:
            given += entry.amount
        else:
            repaid += -entry.amount
    return AdvanceSummary(total_given=given, total_repaid=repaid, transactions=count)


def farmer_balances(entries: Iterable[AdvanceEntry]) -> dict[str, Decimal]:
    """Net advance outstanding per farmer id (positive means the farmer owes)."""
    balances: dict[str, Decimal] = defaultdict(lambda: _ZERO)
    for entry in entries:
        balances[str(entry.user_id)] += entry.amount
    return dict(balances)


def search_advances(entries: Iterable[AdvanceEntry], term: str) -> list[AdvanceEntry]:
    needle = term.strip().lower()
    if not needle:
        return list(entries)
    return [e for e in entries if needle in e.user_name.lower() or needle in e.description.lower()]
