"""Bookkeeping client for a dairy cooperative's milk collection center."""
from milk_center.application.services import MilkCenterServices, build_services
from milk_center.application.session import ForcedLogoutScheduler, SessionGuard
from milk_center.domain.events import EventChannel, EventName
from milk_center.domain.rates import RateTable, resolve_exact, resolve_interpolated

__all__ = [
    "MilkCenterServices",
    "build_services",
    "ForcedLogoutScheduler",
    "SessionGuard",
    "EventChannel",
    "EventName",
    "RateTable",
    "resolve_exact",
    "resolve_interpolated",
]
