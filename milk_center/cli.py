"""Command-line entrypoint for the milk center books."""
from __future__ import annotations

import argparse
import getpass
import sys
from datetime import date
from pathlib import Path

from milk_center.application.dto import AdvanceRequest, CollectionRequest
from milk_center.application.error_handler import login_error_message, parse_error
from milk_center.application.services import MilkCenterServices, build_services
from milk_center.config import SETTINGS
from milk_center.domain.errors import MilkCenterError
from milk_center.domain.rates import compute_amount, format_amount, preview_rate, resolve_interpolated
from milk_center.domain.reports import (
    CollectionFilter,
    advance_summary,
    collection_metrics,
    date_range_for,
)
from milk_center.logging_config import configure_logging
from milk_center.presentation.report_export import collections_to_rows, render_csv, render_html
from milk_center.timeutils import current_time_string, today_local


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Milk collection books for the cooperative center")
    parser.add_argument("--api", type=str, help="Backend base URL (defaults to settings)")
    parser.add_argument("--session-file", type=Path, help="Where the session is stored")
    parser.add_argument("--log-level", type=str, default=SETTINGS.log_level)
    commands = parser.add_subparsers(dest="command", required=True)

    login = commands.add_parser("login", help="Sign in and store the session")
    login.add_argument("username")
    login.add_argument("--password", help="Prompted for when omitted")

    commands.add_parser("logout", help="Sign out and clear the stored session")
    commands.add_parser("whoami", help="Show the signed-in principal")

    rates = commands.add_parser("rates", help="Inspect or edit the fat-rate table")
    rate_commands = rates.add_subparsers(dest="rates_command", required=True)
    rate_commands.add_parser("list")
    rate_set = rate_commands.add_parser("set", help="Add or replace a rate")
    rate_set.add_argument("fat", type=str)
    rate_set.add_argument("rate", type=str)
    rate_delete = rate_commands.add_parser("delete")
    rate_delete.add_argument("fat", type=str)

    preview = commands.add_parser("preview", help="Preview rate and amount for a reading")
    preview.add_argument("fat", type=str)
    preview.add_argument("--liters", type=str)

    collect = commands.add_parser("collect", help="Record a milk collection")
    collect.add_argument("farmer_id")
    collect.add_argument("liters", type=str)
    collect.add_argument("fat", type=str)
    collect.add_argument("--amount", type=str, help="Override the computed amount")
    collect.add_argument("--date", type=str, help="Collection date (YYYY-MM-DD)")
    collect.add_argument("--time", type=str, help="Collection time (HH:MM)")

    advance = commands.add_parser("advance", help="Record an advance (negative amount for a repayment)")
    advance.add_argument("farmer_id")
    advance.add_argument("amount", type=str)
    advance.add_argument("description")

    report = commands.add_parser("report", help="Summarize collections for a period")
    report.add_argument(
        "--range",
        dest="preset",
        choices=["week", "month", "lastmonth", "quarter", "year"],
        default="month",
    )
    report.add_argument("--farmer", type=str, default="all")
    report.add_argument("--format", choices=["text", "csv", "html"], default="text")
    report.add_argument("--output", type=Path)
    return parser.parse_args(argv)


def _login(services: MilkCenterServices, args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("Password: ")
    try:
        principal = services.guard.login(args.username, password)
    except MilkCenterError as exc:
        title, message = login_error_message(exc)
        print(f"{title}: {message}", file=sys.stderr)
        return 1
    print(f"Logged in as {principal.username} ({principal.role.value})")
    return 0


def _rates(services: MilkCenterServices, args: argparse.Namespace) -> int:
    editor = services.fat_rate_editor()
    editor.load()
    if args.rates_command == "set":
        replaced = editor.upsert(args.fat, args.rate)
        editor.save()
        print(f"{'Updated' if replaced else 'Added'} rate for {args.fat}%")
    elif args.rates_command == "delete":
        if not editor.delete(args.fat):
            print(f"No rate configured for {args.fat}%", file=sys.stderr)
            return 1
        editor.save()
        print(f"Deleted rate for {args.fat}%")
    for entry in editor.entries:
        print(f"{entry.fat_percentage:>6}%  {entry.rate:>8}")
    return 0


def _preview(services: MilkCenterServices, args: argparse.Namespace) -> int:
    table = services.fat_rates.load()
    exact = preview_rate(args.fat, table)
    estimate = resolve_interpolated(args.fat, table)
    print(f"Exact rate: {exact if args.fat in table else 'not configured'}")
    print(f"Estimated rate: {estimate}")
    if args.liters:
        print(f"Amount at exact rate: {format_amount(compute_amount(args.liters, exact))}")
    return 0


def _collect(services: MilkCenterServices, args: argparse.Namespace) -> int:
    farmer = services.farmers.get(args.farmer_id)
    table = services.fat_rates.load()
    amount = args.amount or format_amount(compute_amount(args.liters, preview_rate(args.fat, table)))
    request = CollectionRequest(
        user_id=farmer.id,
        date=date.fromisoformat(args.date) if args.date else today_local(),
        time=args.time or current_time_string(),
        liters=args.liters,
        fat_percentage=args.fat,
        amount=amount,
    )
    entry = services.record_collection().execute(request, farmer, table)
    flag = " (manually edited)" if entry.is_manually_edited else ""
    print(f"Recorded {entry.liters} L for {entry.user_name} at {entry.rate}/L: {format_amount(entry.amount)}{flag}")
    return 0


def _advance(services: MilkCenterServices, args: argparse.Namespace) -> int:
    farmer = services.farmers.get(args.farmer_id)
    entry = services.record_advance().execute(AdvanceRequest(farmer.id, args.amount, args.description), farmer)
    kind = "repayment" if entry.is_repayment else "advance"
    print(f"Recorded {kind} of {format_amount(abs(entry.amount))} for {entry.user_name}")
    return 0


def _report(services: MilkCenterServices, args: argparse.Namespace) -> int:
    period = date_range_for(args.preset, today_local())
    farmer_id = None if args.farmer == "all" else args.farmer
    entries = services.collections.list_collections(farmer_id, period.start, period.end)
    entries = [e for e in entries if CollectionFilter(date_range=period, farmer_id=args.farmer).matches(e)]

    if args.format != "text":
        rows = collections_to_rows(entries)
        payload = render_csv(rows) if args.format == "csv" else render_html(rows).encode("utf-8")
        if args.output:
            args.output.write_bytes(payload)
            print(f"Wrote {len(rows)} rows to {args.output}")
        else:
            sys.stdout.write(payload.decode("utf-8"))
        return 0

    metrics = collection_metrics(entries)
    print(f"Collections {period.start} to {period.end}")
    print("==================")
    print(f"Collections: {metrics.total_collections} ({metrics.manual_collections} manual)")
    print(f"Farmers: {metrics.active_farmers}")
    print(f"Total liters: {metrics.total_liters:.1f}")
    print(f"Total amount: {format_amount(metrics.total_amount)}")
    print(f"Average fat: {metrics.average_fat:.2f}%")
    if services.guard.can_access_advanced_features():
        summary = advance_summary(services.advances.list_advances(farmer_id))
        print(f"Advances outstanding: {format_amount(summary.outstanding)}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    configure_logging(args.log_level)
    services = build_services(base_url=args.api, session_file=args.session_file)
    try:
        if args.command == "login":
            return _login(services, args)
        if args.command == "logout":
            services.guard.logout()
            print("Logged out")
            return 0
        if args.command == "whoami":
            principal = services.guard.principal
            print(f"{principal.username} ({principal.role.value})" if principal else "Not logged in")
            return 0 if principal else 1
        handlers = {
            "rates": _rates,
            "preview": _preview,
            "collect": _collect,
            "advance": _advance,
            "report": _report,
        }
        return handlers[args.command](services, args)
    except MilkCenterError as exc:
        parsed = parse_error(exc, context=args.command)
        print(f"Error: {parsed.message}", file=sys.stderr)
        for item in parsed.validation_errors:
            print(f"  {item.field}: {item.message}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    finally:
        services.close()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
