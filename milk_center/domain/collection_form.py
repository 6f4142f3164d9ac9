"""Collection entry draft: the live preview behind the entry form.

The draft holds the raw field strings the operator typed and the amount
mode. In ``AUTO`` mode the amount follows ``liters * rate`` on every change;
editing the amount directly switches to ``MANUAL`` and freezes it until the
operator switches back, which recomputes at once.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from .models import AmountMode
from .rates import RateTable, as_decimal, compute_amount, format_amount, preview_rate


def _parse(value: str) -> Decimal | None:
    try:
        return as_decimal(value) if value.strip() else None
    except ValueError:
        return None


@dataclass
class CollectionDraft:
    table: RateTable
    liters: str = ""
    fat_percentage: str = ""
    amount: str = ""
    mode: AmountMode = AmountMode.AUTO
    fat_rate_error: str = field(default="", init=False)

    def set_liters(self, value: str) -> None:
        self.liters = value
        self._recompute()

    def set_fat_percentage(self, value: str) -> None:
        self.fat_percentage = value
        self._check_fat_rate()
        self._recompute()

    def edit_amount(self, value: str) -> None:
        self.amount = value
        self.mode = AmountMode.MANUAL

    def switch_to_auto(self) -> None:
        self.mode = AmountMode.AUTO
        self._recompute()

    def toggle_mode(self) -> None:
        if self.mode is AmountMode.MANUAL:
            self.switch_to_auto()
        else:
            self.mode = AmountMode.MANUAL

    def reload_rates(self, table: RateTable) -> None:
        self.table = table
        self._check_fat_rate()
        self._recompute()

    def reset(self) -> None:
        self.liters = self.fat_percentage = self.amount = ""
        self.mode = AmountMode.AUTO
        self.fat_rate_error = ""

    @property
    def rate(self) -> Decimal:
        fat = _parse(self.fat_percentage)
        return preview_rate(fat, self.table) if fat is not None else Decimal("0")

    @property
    def preview_amount(self) -> Decimal:
        liters = _parse(self.liters)
        if liters is None or _parse(self.fat_percentage) is None:
            return Decimal("0")
        return compute_amount(liters, self.rate)

    def _check_fat_rate(self) -> None:
        self.fat_rate_error = ""
        fat = _parse(self.fat_percentage)
        if fat is not None and fat not in self.table:
            self.fat_rate_error = (
                f"Fat rate not available for {fat}%. Please configure this exact fat rate first."
            )

    def _recompute(self) -> None:
        if self.mode is not AmountMode.AUTO:
            return
        if _parse(self.liters) is None or _parse(self.fat_percentage) is None:
            return
        self.amount = format_amount(self.preview_amount)
