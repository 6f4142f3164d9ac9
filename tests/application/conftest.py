import json
from pathlib import Path
from typing import Callable

import httpx
import pytest

from milk_center.application.services import MilkCenterServices, build_services
from milk_center.application.session import ForcedLogoutScheduler
from milk_center.domain.models import Principal, Role


class FakeTimer:
    def __init__(self, interval: float, function: Callable[[], None]) -> None:
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.function()


class Backend:
    """Routes ``(method, path)`` to canned JSON replies and records every request."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def reply(self, method: str, path: str, status: int = 200, body: dict | None = None) -> None:
        self.routes[(method, path)] = lambda request: httpx.Response(status, json=body or {"success": True})

    def route(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[(method, path)] = handler

    def bodies(self, method: str, path: str) -> list[dict]:
        return [
            json.loads(r.content or b"{}")
            for r in self.requests
            if r.method == method and r.url.path == f"/api{path}"
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api")
        handler = self.routes.get((request.method, path))
        if handler is None:
            return httpx.Response(404, json={"success": False, "message": f"No route for {path}"})
        return handler(request)


@pytest.fixture
def backend() -> Backend:
    return Backend()


@pytest.fixture
def timers() -> list[FakeTimer]:
    return []


@pytest.fixture
def services(tmp_path: Path, backend: Backend, timers: list[FakeTimer]) -> MilkCenterServices:
    def factory(interval: float, function: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(interval, function)
        timers.append(timer)
        return timer

    built = build_services(
        base_url="http://backend.test/api",
        session_file=tmp_path / "session.json",
        transport=httpx.MockTransport(backend),
        scheduler=ForcedLogoutScheduler(delay=3.0, timer_factory=factory),
    )
    yield built
    built.close()


@pytest.fixture
def sign_in(services: MilkCenterServices) -> Callable[[Role], None]:
    def _sign_in(role: Role) -> None:
        services.store.save(Principal(f"{role.value}-1", role), "tok-1")

    return _sign_in
