from pathlib import Path

from milk_center.domain.models import Principal, Role
from milk_center.infrastructure.storage.session_store import PROFILE_KEY, TOKEN_KEY, FileSessionStore


def test_save_and_load_session(tmp_path: Path):
    path = tmp_path / "session.json"
    store = FileSessionStore(path)
    store.save(Principal("asha", Role.ADMIN), "tok")

    reopened = FileSessionStore(path)
    assert reopened.load_principal() == Principal("asha", Role.ADMIN)
    assert reopened.load_token() == "tok"
    assert PROFILE_KEY in path.read_text() and TOKEN_KEY in path.read_text()


def test_clear_removes_both_keys(tmp_path: Path):
    path = tmp_path / "session.json"
    store = FileSessionStore(path)
    store.save(Principal("asha", Role.USER), "tok")

    store.clear()

    assert store.load_principal() is None
    assert store.load_token() is None
    assert not path.exists()


def test_clear_token_keeps_profile(tmp_path: Path):
    store = FileSessionStore(tmp_path / "session.json")
    store.save(Principal("asha", Role.USER), "tok")
    store.clear_token()

    assert store.load_token() is None
    assert store.load_principal() == Principal("asha", Role.USER)

    store.save_token("tok-2")
    assert store.load_token() == "tok-2"


def test_corrupt_or_unknown_profile_is_logged_out(tmp_path: Path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")
    assert FileSessionStore(path).load_principal() is None

    path.write_text('{"msr-milk-center-auth": {"username": "x", "role": "owner"}}', encoding="utf-8")
    assert FileSessionStore(path).load_principal() is None
