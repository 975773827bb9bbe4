"""Tests for :mod:`services.sessions` (login, refresh rotation, logout, password change)."""
from datetime import datetime, timedelta, timezone

import pytest
from argon2 import PasswordHasher

from models import storage
from models.user import User
from services import sessions
from services.guard import authenticate
from utils import security
from utils.errors import Conflict, IntegrityFailure, InvalidCredentials, InvalidToken, NotFound

from conftest import ALICE


def test_register_stores_hash_not_password(alice):
    assert alice.password_hash != ALICE["password"]
    assert alice.password_hash.startswith("$argon2")
    assert alice.refresh_token is None, "A new identity has no active session"


def test_register_rejects_duplicate_username_or_email(alice):
    with pytest.raises(Conflict):
        sessions.register("alice", "other@example.com", "Other", "whatever-pass")
    with pytest.raises(Conflict):
        sessions.register("other", "alice@example.com", "Other", "whatever-pass")


def test_login_then_authenticate_resolves_same_user(alice):
    user, access, refresh = sessions.login("alice", ALICE["password"])
    assert user.id == alice.id
    assert authenticate(access) == alice.id
    assert storage.get(User, alice.id).refresh_token == refresh


def test_login_by_email_case_insensitive(alice):
    user, _, _ = sessions.login("Alice@Example.com", ALICE["password"])
    assert user.id == alice.id


def test_wrong_password_and_unknown_user_look_the_same(alice):
    with pytest.raises(InvalidCredentials) as wrong_password:
        sessions.login("alice", "wrong")
    with pytest.raises(InvalidCredentials) as unknown_user:
        sessions.login("mallory", "wrong")
    assert wrong_password.value.message == unknown_user.value.message
    assert storage.get(User, alice.id).refresh_token is None, "Failed login persists nothing"


def test_corrupted_hash_is_integrity_failure(alice):
    alice.password_hash = "not-an-argon2-hash"
    storage.new(alice)
    storage.save()
    with pytest.raises(IntegrityFailure):
        sessions.login("alice", ALICE["password"])


def test_refresh_rotates_and_old_token_dies(alice):
    _, _, r1 = sessions.login("alice", ALICE["password"])
    a2, r2 = sessions.refresh(r1)
    assert r2 != r1
    assert authenticate(a2) == alice.id
    with pytest.raises(InvalidToken):
        sessions.refresh(r1)
    # The replay attempt does not disturb the rotated session
    sessions.refresh(r2)


def test_logout_revokes_refresh_token(alice):
    _, _, refresh = sessions.login("alice", ALICE["password"])
    sessions.logout(alice.id)
    assert storage.get(User, alice.id).refresh_token is None
    with pytest.raises(InvalidToken):
        sessions.refresh(refresh)


def test_logout_is_idempotent(alice):
    sessions.logout(alice.id)
    sessions.logout(alice.id)
    sessions.logout("no-such-user")


def test_logout_leaves_access_token_valid_until_expiry(alice):
    _, access, _ = sessions.login("alice", ALICE["password"])
    sessions.logout(alice.id)
    assert authenticate(access) == alice.id


def test_second_login_supersedes_first_session(alice):
    _, _, first = sessions.login("alice", ALICE["password"])
    _, _, second = sessions.login("alice", ALICE["password"])
    with pytest.raises(InvalidToken):
        sessions.refresh(first)
    sessions.refresh(second)


def test_refresh_rejects_access_token(alice):
    _, access, _ = sessions.login("alice", ALICE["password"])
    with pytest.raises(InvalidToken):
        sessions.refresh(access)


def test_refresh_for_missing_user_is_invalid_token(ctx):
    token = security.create_refresh_token("00000000-0000-0000-0000-000000000000")
    with pytest.raises(InvalidToken):
        sessions.refresh(token)


def test_refresh_rejects_expired_token_even_if_stored(alice, monkeypatch):
    past = datetime.now(timezone.utc) - timedelta(days=30)
    monkeypatch.setattr(security, "_now", lambda: past)
    _, _, stale = sessions.login("alice", ALICE["password"])
    monkeypatch.undo()
    assert storage.get(User, alice.id).refresh_token == stale
    with pytest.raises(InvalidToken):
        sessions.refresh(stale)


def test_change_password_wrong_old_keeps_hash(alice):
    before = storage.get(User, alice.id).password_hash
    with pytest.raises(InvalidCredentials):
        sessions.change_password(alice.id, "wrong", "brand-new-pass")
    assert storage.get(User, alice.id).password_hash == before
    sessions.login("alice", ALICE["password"])


def test_change_password_keeps_sessions_by_default(alice):
    _, _, refresh = sessions.login("alice", ALICE["password"])
    sessions.change_password(alice.id, ALICE["password"], "brand-new-pass")

    with pytest.raises(InvalidCredentials):
        sessions.login("alice", ALICE["password"])
    sessions.refresh(refresh)


def test_change_password_can_revoke_sessions(alice, ctx):
    ctx.config["REVOKE_SESSIONS_ON_PASSWORD_CHANGE"] = True
    _, _, refresh = sessions.login("alice", ALICE["password"])
    sessions.change_password(alice.id, ALICE["password"], "brand-new-pass")
    with pytest.raises(InvalidToken):
        sessions.refresh(refresh)
    sessions.login("alice", "brand-new-pass")


def test_change_password_missing_user(ctx):
    with pytest.raises(NotFound):
        sessions.change_password("no-such-user", "a", "b")


def test_update_details(alice, bob):
    user = sessions.update_details(alice.id, full_name="Alice L.")
    assert user.full_name == "Alice L."
    assert user.username == "alice"
    with pytest.raises(Conflict):
        sessions.update_details(alice.id, email="bob@example.com")


def test_scenario_alice(alice):
    """Register, log in, fail a login, rotate, replay, log out."""
    _, a1, r1 = sessions.login("alice", "correct-horse")
    assert authenticate(a1) == alice.id

    with pytest.raises(InvalidCredentials):
        sessions.login("alice", "wrong")

    a2, r2 = sessions.refresh(r1)
    assert authenticate(a2) == alice.id
    with pytest.raises(InvalidToken):
        sessions.refresh(r1)

    sessions.logout(alice.id)
    with pytest.raises(InvalidToken):
        sessions.refresh(r2)


def test_register_normalizes_handles_for_any_caller(ctx):
    carol = sessions.register("  Carol ", "Carol@Example.com", "Carol", "correct-horse")
    assert carol.username == "carol"
    assert carol.email == "carol@example.com"

    user, _, _ = sessions.login("Carol", "correct-horse")
    assert user.id == carol.id
    user, _, _ = sessions.login("CAROL@example.COM", "correct-horse")
    assert user.id == carol.id


def test_handles_differing_only_by_case_conflict(ctx):
    sessions.register("Dave", "dave@example.com", "Dave", "correct-horse")
    with pytest.raises(Conflict):
        sessions.register("dave", "dave2@example.com", "Dave", "correct-horse")
    with pytest.raises(Conflict):
        sessions.register("dave2", "DAVE@example.com", "Dave", "correct-horse")


def test_update_details_normalizes_email(alice, bob):
    user = sessions.update_details(alice.id, email="  Alice.New@Example.com ")
    assert user.email == "alice.new@example.com"
    with pytest.raises(Conflict):
        sessions.update_details(alice.id, email="BOB@example.com")
    sessions.login("alice.new@example.com", ALICE["password"])


def test_login_upgrades_outdated_hash(alice):
    alice.password_hash = PasswordHasher(time_cost=1).hash(ALICE["password"])
    storage.new(alice)
    storage.save()
    outdated = alice.password_hash
    assert security.needs_rehash(outdated)

    sessions.login("alice", ALICE["password"])
    upgraded = storage.get(User, alice.id).password_hash
    assert upgraded != outdated
    assert not security.needs_rehash(upgraded)
    sessions.login("alice", ALICE["password"])


def test_user_model_accepts_plain_attributes(ctx):
    user = User(username="erin", email="erin@example.com", full_name="Erin", password_hash="x")
    assert user.id
    assert not user.has_session
    assert not hasattr(User, "password")
