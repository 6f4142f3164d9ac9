"""Report generators for collection and advance ledgers."""
from __future__ import annotations

import csv
import html
import io
from typing import Sequence

import pandas as pd

from milk_center.domain.models import AdvanceEntry, CollectionEntry
from milk_center.domain.rates import format_amount
from milk_center.domain.reports import FarmerStats, PeriodStats


def collections_to_rows(entries: Sequence[CollectionEntry]) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for entry in entries:
        rows.append(
            {
                "date": entry.date.isoformat(),
                "time": entry.time,
                "farmer": entry.user_name,
                "liters": str(entry.liters),
                "fat_percentage": str(entry.fat_percentage),
                "rate": str(entry.rate),
                "amount": format_amount(entry.amount),
                "type": "manual" if entry.is_manually_edited else "auto",
            }
        )
    return rows


def advances_to_rows(entries: Sequence[AdvanceEntry]) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for entry in entries:
        rows.append(
            {
                "date": entry.date.date().isoformat(),
                "farmer": entry.user_name,
                "type": "repayment" if entry.is_repayment else "advance",
                "amount": format_amount(abs(entry.amount)),
                "description": entry.description,
            }
        )
    return rows


def farmer_stats_to_rows(stats: Sequence[FarmerStats]) -> list[dict[str, str]]:
    return [
        {
            "farmer": item.farmer.name,
            "collections": str(item.collections),
            "total_liters": f"{item.total_liters:.1f}",
            "total_amount": format_amount(item.total_amount),
            "average_fat": f"{item.average_fat:.2f}",
            "quality_score": f"{item.quality_score:.0f}",
            "manual_edits": str(item.manual_edits),
            "reliability": f"{item.reliability:.0f}%",
            "last_collection": item.last_collection.isoformat() if item.last_collection else "",
        }
        for item in stats
    ]


def period_stats_to_rows(stats: Sequence[PeriodStats]) -> list[dict[str, str]]:
    return [
        {
            "period": item.key,
            "collections": str(item.collections),
            "farmers": str(item.farmers),
            "liters": f"{item.liters:.1f}",
            "amount": format_amount(item.amount),
            "average_fat": f"{item.average_fat:.2f}",
        }
        for item in stats
    ]


def to_dataframe(rows: list[dict[str, str]]) -> pd.DataFrame:
    return pd.DataFrame(rows)


def render_csv(rows: list[dict[str, str]]) -> bytes:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()) if rows else [])
    if rows:
        writer.writeheader()
        writer.writerows(rows)
    return buffer.getvalue().encode("utf-8")


def render_html(rows: list[dict[str, str]], empty_message: str = "No records found.") -> str:
    if not rows:
        return f"<p>{html.escape(empty_message)}</p>"
    header = "".join(f"<th>{html.escape(col)}</th>" for col in rows[0].keys())
    body_parts = []
    for row in rows:
        body_parts.append("<tr>" + "".join(f"<td>{html.escape(value)}</td>" for value in row.values()) + "</tr>")
    body_html = "".join(body_parts)
    return f"<table><thead><tr>{header}</tr></thead><tbody>{body_html}</tbody></table>"
