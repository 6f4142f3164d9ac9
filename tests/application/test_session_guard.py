import httpx
import pytest

from milk_center.application.session import REVOKED_NOTICE, REVOKED_TITLE
from milk_center.config import ACCESS_DENIED_MESSAGE
from milk_center.domain import access
from milk_center.domain.access import Page
from milk_center.domain.errors import AccessDeniedError, AuthenticationError, PermissionDeniedError, RateLimitError
from milk_center.domain.models import Principal, Role


def revoke_everything(backend):
    backend.reply("GET", "/collections", 403, {"success": False, "message": ACCESS_DENIED_MESSAGE})


def test_login_persists_profile_and_token(services, backend):
    backend.reply(
        "POST",
        "/auth/login",
        body={"success": True, "data": {"user": {"_id": "u1", "username": "asha", "role": "admin"}, "token": "jwt"}},
    )

    principal = services.guard.login("asha", "secret")

    assert principal == Principal("asha", Role.ADMIN)
    assert services.guard.is_authenticated()
    assert services.store.load_token() == "jwt"
    assert backend.bodies("POST", "/auth/login") == [{"username": "asha", "password": "secret"}]


def test_login_rejects_bad_credentials(services, backend):
    backend.reply("POST", "/auth/login", 401, {"success": False, "message": "Invalid credentials"})

    with pytest.raises(AuthenticationError) as excinfo:
        services.guard.login("asha", "wrong")

    assert excinfo.value.status_code == 401
    assert excinfo.value.message == "Invalid credentials"
    assert not services.guard.is_authenticated()


def test_login_unsuccessful_body_is_an_auth_failure(services, backend):
    backend.reply("POST", "/auth/login", 200, {"success": False, "message": "Account disabled"})

    with pytest.raises(AuthenticationError, match="Account disabled"):
        services.guard.login("asha", "secret")


def test_login_rate_limited(services, backend):
    backend.reply("POST", "/auth/login", 429, {"success": False, "message": "Too many requests"})

    with pytest.raises(RateLimitError):
        services.guard.login("asha", "secret")


def test_logout_swallows_server_failure_and_clears(services, backend, sign_in):
    sign_in(Role.USER)

    def refused(request):
        raise httpx.ConnectError("down", request=request)

    backend.route("POST", "/auth/logout", refused)
    services.guard.logout()

    assert not services.guard.is_authenticated()
    assert services.store.load_principal() is None


def test_verify_clears_rejected_session(services, backend, sign_in):
    sign_in(Role.USER)
    backend.reply("GET", "/auth/me", 401, {"success": False, "message": "Token expired"})

    assert services.guard.verify() is False
    assert services.store.load_token() is None


def test_capabilities_follow_current_principal(services, sign_in):
    assert services.guard.navigation() == []
    assert not services.guard.can_modify_data()

    sign_in(Role.HELPER)
    assert services.guard.is_helper()
    assert [item.page for item in services.guard.navigation()] == [Page.COLLECTION]
    with pytest.raises(PermissionDeniedError):
        services.guard.require(access.can_modify_data)

    sign_in(Role.ADMIN)
    assert services.guard.require(access.can_manage_helpers) is Role.ADMIN


def test_revocation_notifies_then_reloads_once_after_delay(services, backend, sign_in, timers):
    sign_in(Role.USER)
    revoke_everything(backend)
    notices: list[tuple[str, str]] = []
    reloads: list[int] = []
    services.guard.install_revocation_handler(lambda title, message: notices.append((title, message)), lambda: reloads.append(1))

    with pytest.raises(AccessDeniedError):
        services.collections.list_collections()
    with pytest.raises(AccessDeniedError):
        services.collections.list_collections()

    assert notices[0] == (REVOKED_TITLE, REVOKED_NOTICE)
    assert services.store.load_token() is None
    assert len(timers) == 1
    assert timers[0].interval == 3.0
    assert timers[0].started
    assert reloads == []

    timers[0].fire()
    timers[0].fire()
    assert reloads == [1]
    assert not services.guard.scheduler.pending


def test_installing_handler_twice_keeps_one_subscription(services, backend, sign_in):
    notices: list[str] = []
    first = services.guard.install_revocation_handler(lambda t, m: notices.append(m), lambda: None)
    second = services.guard.install_revocation_handler(lambda t, m: notices.append(m), lambda: None)
    assert first is second

    sign_in(Role.USER)
    revoke_everything(backend)
    with pytest.raises(AccessDeniedError):
        services.collections.list_collections()
    assert len(notices) == 1


def test_logout_cancels_pending_reload(services, backend, sign_in, timers):
    sign_in(Role.USER)
    revoke_everything(backend)
    backend.reply("POST", "/auth/logout")
    reloads: list[int] = []
    services.guard.install_revocation_handler(lambda t, m: None, lambda: reloads.append(1))

    with pytest.raises(AccessDeniedError):
        services.collections.list_collections()
    services.guard.logout()
    timers[0].fire()

    assert timers[0].cancelled
    assert reloads == []


def test_revoked_logout_request_leaves_no_pending_reload(services, backend, sign_in, timers):
    sign_in(Role.USER)
    backend.reply("POST", "/auth/logout", 403, {"success": False, "message": ACCESS_DENIED_MESSAGE})
    reloads: list[int] = []
    services.guard.install_revocation_handler(lambda t, m: None, lambda: reloads.append(1))

    services.guard.logout()
    for timer in timers:
        timer.fire()

    assert [timer.cancelled for timer in timers] == [True]
    assert not services.guard.scheduler.pending
    assert reloads == []
    assert not services.guard.is_authenticated()
