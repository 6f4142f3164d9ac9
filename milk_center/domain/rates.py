"""Fat-percentage rate resolution and collection amount rules.

Two resolvers live here on purpose and must stay separate:

* :func:`resolve_exact` is the only resolver allowed for collections that
  are submitted. Every actionable fat percentage needs an explicitly
  configured rate.
* :func:`resolve_interpolated` guesses a rate between configured points and
  is for previews and reporting. Its result is rounded to a whole number
  while exact rates keep their decimals; that asymmetry is inherited
  behaviour awaiting a product decision.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Iterator, Mapping

from .errors import RateNotFound
from .models import FatRate

MANUAL_EDIT_TOLERANCE = Decimal("0.01")
_ZERO = Decimal("0")


def as_decimal(value: object) -> Decimal:
    """Coerce form input, JSON numbers or Decimals into a ``Decimal``.

    Floats go through ``str`` so ``4.1`` becomes ``Decimal("4.1")`` rather
    than its binary expansion.
    """
    if isinstance(value, bool):
        raise TypeError("booleans are not quantities")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a number: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


class RateTable:
    """Fat-percentage to price-per-liter mapping, unique by fat percentage.

    Entries are kept sorted ascending after every mutation.
    """

    def __init__(self, rates: Iterable[FatRate] = ()) -> None:
        self._by_fat: dict[Decimal, FatRate] = {}
        for rate in rates:
            self.upsert(rate)

    @classmethod
    def from_pairs(cls, pairs: Mapping[object, object] | Iterable[tuple[object, object]]) -> "RateTable":
        items = pairs.items() if isinstance(pairs, Mapping) else pairs
        return cls(FatRate(as_decimal(fat), as_decimal(rate)) for fat, rate in items)

    def __iter__(self) -> Iterator[FatRate]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self._by_fat)

    def __contains__(self, fat_percentage: object) -> bool:
        return as_decimal(fat_percentage) in self._by_fat

    @property
    def entries(self) -> list[FatRate]:
        return sorted(self._by_fat.values(), key=lambda r: r.fat_percentage)

    def get(self, fat_percentage: object) -> FatRate | None:
        return self._by_fat.get(as_decimal(fat_percentage))

    def upsert(self, rate: FatRate) -> bool:
        """Add or replace; returns True when an existing entry was replaced."""
        fat = as_decimal(rate.fat_percentage)
        replaced = fat in self._by_fat
        self._by_fat[fat] = FatRate(fat, as_decimal(rate.rate))
        return replaced

    def replace(self, old_fat_percentage: object, rate: FatRate) -> None:
        """Edit an entry, possibly moving it to a new fat percentage."""
        self._by_fat.pop(as_decimal(old_fat_percentage), None)
        self.upsert(rate)

    def remove(self, fat_percentage: object) -> bool:
        return self._by_fat.pop(as_decimal(fat_percentage), None) is not None

    def copy(self) -> "RateTable":
        return RateTable(self.entries)

    def to_payload(self) -> list[dict[str, float]]:
        return [{"fatPercentage": float(r.fat_percentage), "rate": float(r.rate)} for r in self.entries]


def resolve_exact(fat_percentage: object, table: RateTable) -> Decimal:
    """Rate for exactly this fat percentage; raises :class:`RateNotFound`."""
    fat = as_decimal(fat_percentage)
    entry = table.get(fat)
    if entry is None:
        raise RateNotFound(fat)
    return entry.rate


def preview_rate(fat_percentage: object, table: RateTable) -> Decimal:
    """Exact rate or zero, for live previews while the operator types."""
    entry = table.get(fat_percentage)
    return entry.rate if entry is not None else _ZERO


def resolve_interpolated(fat_percentage: object, table: RateTable) -> Decimal:
    fat = as_decimal(fat_percentage)
    entries = table.entries
    if not entries:
        return _ZERO

    exact = table.get(fat)
    if exact is not None:
        return exact.rate

    lowest, highest = entries[0], entries[-1]
    if fat <= lowest.fat_percentage:
        return lowest.rate
    if fat >= highest.fat_percentage:
        return highest.rate

    for lower, upper in zip(entries, entries[1:]):
        if lower.fat_percentage <= fat <= upper.fat_percentage:
            ratio = (fat - lower.fat_percentage) / (upper.fat_percentage - lower.fat_percentage)
            value = lower.rate + (upper.rate - lower.rate) * ratio
            return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)

    return lowest.rate


def compute_amount(liters: object, rate: object) -> Decimal:
    return as_decimal(liters) * as_decimal(rate)


def detect_manual_edit(
    submitted_amount: object,
    liters: object,
    rate: object,
    tolerance: Decimal = MANUAL_EDIT_TOLERANCE,
) -> bool:
    """True when the amount deviates from ``liters * rate`` beyond the tolerance.

    The tolerance absorbs the two-decimal formatting the entry form applies;
    tightening it flags auto-computed amounts as manual.
    """
    return abs(as_decimal(submitted_amount) - compute_amount(liters, rate)) > tolerance


def format_amount(amount: Decimal) -> str:
    return f"{amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)}"
