"""Session guard: the authenticated principal, its capabilities, and forced logout."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol

from milk_center.config import SETTINGS
from milk_center.domain import access
from milk_center.domain.access import NavigationItem
from milk_center.domain.errors import (
    ApiError,
    AuthenticationError,
    MilkCenterError,
    PermissionDeniedError,
    RateLimitError,
)
from milk_center.domain.events import Event, EventChannel, EventName
from milk_center.domain.models import Principal, Role
from milk_center.domain.repositories import SessionStore
from milk_center.infrastructure.http.client import ApiClient

logger = logging.getLogger(__name__)

REVOKED_TITLE = "Access Denied"
REVOKED_NOTICE = (
    "Your access has been revoked due to insufficient permissions. "
    "You will be logged out automatically."
)


class TimerHandle(Protocol):
    def start(self) -> None:
        ...

    def cancel(self) -> None:
        ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def _daemon_timer(interval: float, function: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(interval, function)
    timer.daemon = True
    return timer


class ForcedLogoutScheduler:
    """Holds at most one pending delayed reload; cancellable until it fires."""

    def __init__(self, delay: float | None = None, timer_factory: TimerFactory = _daemon_timer) -> None:
        self._delay = SETTINGS.forced_logout_delay_seconds if delay is None else delay
        self._timer_factory = timer_factory
        self._pending: TimerHandle | None = None
        self._lock = threading.Lock()

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def schedule(self, callback: Callable[[], None]) -> bool:
        with self._lock:
            if self._pending is not None:
                return False

            def fire() -> None:
                with self._lock:
                    if self._pending is not handle:
                        return
                    self._pending = None
                callback()

            handle = self._timer_factory(self._delay, fire)
            self._pending = handle
        handle.start()
        return True

    def cancel(self) -> bool:
        with self._lock:
            handle, self._pending = self._pending, None
        if handle is None:
            return False
        handle.cancel()
        return True


class SessionGuard:
    def __init__(
        self,
        client: ApiClient,
        store: SessionStore,
        events: EventChannel,
        scheduler: ForcedLogoutScheduler | None = None,
    ) -> None:
        self._client = client
        self._store = store
        self._events = events
        self._scheduler = scheduler or ForcedLogoutScheduler()
        self._revocation_unsubscribe: Callable[[], None] | None = None

    # -- state ---------------------------------------------------------

    @property
    def scheduler(self) -> ForcedLogoutScheduler:
        return self._scheduler

    def is_authenticated(self) -> bool:
        return self._store.load_principal() is not None and bool(self._store.load_token())

    @property
    def principal(self) -> Principal | None:
        return self._store.load_principal() if self.is_authenticated() else None

    @property
    def role(self) -> Role | None:
        principal = self.principal
        return principal.role if principal else None

    # -- capabilities --------------------------------------------------

    def is_admin(self) -> bool:
        return access.is_admin(self.role)

    def is_helper(self) -> bool:
        return access.is_helper(self.role)

    def can_access_advanced_features(self) -> bool:
        return access.can_access_advanced_features(self.role)

    def can_modify_data(self) -> bool:
        return access.can_modify_data(self.role)

    def navigation(self) -> list[NavigationItem]:
        return access.navigation_for(self.role)

    def require(self, predicate: Callable[[Role | None], bool], message: str = "Permission denied") -> Role:
        role = self.role
        if role is None or not predicate(role):
            raise PermissionDeniedError(message)
        return role

    # -- lifecycle -----------------------------------------------------

    def login(self, username: str, password: str) -> Principal:
        try:
            response = self._client.post("/auth/login", {"username": username, "password": password})
        except ApiError as exc:
            if exc.status_code == 429:
                raise RateLimitError(exc.message or RateLimitError().message) from exc
            if exc.status_code in (400, 401, 403):
                raise AuthenticationError(exc.message, exc.status_code) from exc
            raise

        data = response.get("data") or {}
        user, token = data.get("user"), data.get("token")
        if not response.get("success") or not user or not token:
            raise AuthenticationError(response.get("message") or "Authentication failed", 401)
        try:
            principal = Principal.from_profile(user)
        except (KeyError, ValueError) as exc:
            raise AuthenticationError("Unrecognised account role", 401) from exc

        self._store.save(principal, token)
        logger.info("Logged in as %s (%s)", principal.username, principal.role.value)
        return principal

    def logout(self) -> None:
        """Best-effort server notification; local state is always cleared."""
        try:
            self._client.post("/auth/logout")
        except MilkCenterError as exc:
            logger.warning("Logout request failed: %s", exc.message)
        finally:
            self._store.clear()
            self._scheduler.cancel()

    def verify(self) -> bool:
        """Ask the backend whether the stored token is still good."""
        if not self.is_authenticated():
            return False
        try:
            return bool(self._client.get("/auth/me").get("success"))
        except MilkCenterError as exc:
            logger.info("Session verification failed: %s", exc.message)
            self._store.clear()
            return False

    # -- access revocation ---------------------------------------------

    def install_revocation_handler(
        self,
        notify: Callable[[str, str], None],
        reload: Callable[[], None],
    ) -> Callable[[], None]:
        """Subscribe the shell's reaction to ``USER_ACCESS_DENIED``.

        ``notify(title, message)`` must show a persistent alert; ``reload``
        is invoked once, ``scheduler.delay`` seconds later. Installing twice
        keeps the first subscription.
        """
        if self._revocation_unsubscribe is not None:
            return self._revocation_unsubscribe

        def on_access_denied(event: Event) -> None:
            logger.warning("Access denied detected: %s", event.payload)
            notify(REVOKED_TITLE, REVOKED_NOTICE)
            self._scheduler.schedule(reload)

        unsubscribe = self._events.subscribe(EventName.USER_ACCESS_DENIED, on_access_denied)

        def uninstall() -> None:
            unsubscribe()
            self._revocation_unsubscribe = None

        self._revocation_unsubscribe = uninstall
        return uninstall
