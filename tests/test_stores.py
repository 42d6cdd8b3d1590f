from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt
from sqlmodel import Session

from todo_backend import config
from todo_backend.auth import Identity, issue_token, verify_token
from todo_backend.errors import DuplicateIdentity, InvalidCredentials, InvalidToken, NotFound, ValidationError
from todo_backend.models import as_utc
from todo_backend.security import get_password_hash, verify_password
from todo_backend.todos import create_todo, delete_todo, list_todos, update_todo
from todo_backend.users import authenticate, create_user, find_user_by_identity


@pytest.fixture(name="alice")
def alice_fixture(test_db_session: Session):
    return create_user(test_db_session, "alice", "alice@example.com", "alice-password")


@pytest.fixture(name="bob")
def bob_fixture(test_db_session: Session):
    return create_user(test_db_session, "bob", "bob@example.com", "bob-password")


# --- Credential store ---

def test_password_is_hashed_with_salt():
    first = get_password_hash("hunter22")
    second = get_password_hash("hunter22")
    assert first != "hunter22"
    assert first != second
    assert verify_password("hunter22", first)
    assert not verify_password("hunter23", first)


def test_create_user_stores_hash(alice):
    assert alice.id is not None
    assert alice.password_hash != "alice-password"
    assert verify_password("alice-password", alice.password_hash)


def test_duplicate_username_rejected(test_db_session: Session, alice):
    with pytest.raises(DuplicateIdentity):
        create_user(test_db_session, "alice", "other@example.com", "password")


def test_duplicate_email_rejected(test_db_session: Session, alice):
    with pytest.raises(DuplicateIdentity):
        create_user(test_db_session, "alice2", "alice@example.com", "password")
    # the failed insert was rolled back and the session is still usable
    assert find_user_by_identity(test_db_session, "alice").id == alice.id


@pytest.mark.parametrize(
    "username,email,password,message",
    [
        ("", "x@example.com", "password", "All fields are required"),
        ("x", None, "password", "All fields are required"),
        ("x", "x@example.com", "", "All fields are required"),
        ("x", "x@example.com", "12345", "Password must be at least 6 characters"),
    ],
)
def test_create_user_validation(test_db_session: Session, username, email, password, message):
    with pytest.raises(ValidationError) as excinfo:
        create_user(test_db_session, username, email, password)
    assert excinfo.value.message == message


def test_find_user_by_identity(alice, test_db_session: Session):
    assert find_user_by_identity(test_db_session, "alice").id == alice.id
    assert find_user_by_identity(test_db_session, "alice@example.com").id == alice.id
    assert find_user_by_identity(test_db_session, "nobody") is None


def test_authenticate(test_db_session: Session, alice):
    assert authenticate(test_db_session, "alice", "alice-password").id == alice.id
    with pytest.raises(InvalidCredentials):
        authenticate(test_db_session, "alice", "wrong-password")
    with pytest.raises(InvalidCredentials):
        authenticate(test_db_session, "nobody", "alice-password")
    with pytest.raises(ValidationError):
        authenticate(test_db_session, "alice", None)


# --- Session tokens ---

def _in_an_hour() -> int:
    return int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())


def test_issue_and_verify_token(alice):
    assert verify_token(issue_token(alice)) == Identity(user_id=alice.id, username="alice")


def test_tokens_are_per_user(alice, bob):
    assert verify_token(issue_token(alice)).user_id != verify_token(issue_token(bob)).user_id


def test_token_expires_after_a_day(alice):
    payload = jwt.get_unverified_claims(issue_token(alice))
    assert payload["exp"] - payload["iat"] == 24 * 60 * 60


def test_expired_token_rejected(alice):
    token = issue_token(alice, expires_delta=timedelta(seconds=-10))
    with pytest.raises(InvalidToken):
        verify_token(token)


def test_token_signed_with_other_secret_rejected(alice):
    forged = jwt.encode({"sub": str(alice.id), "username": "alice"}, "not-the-secret", algorithm=config.ALGORITHM)
    with pytest.raises(InvalidToken):
        verify_token(forged)


def test_malformed_payload_rejected():
    token = jwt.encode({"sub": "abc", "username": "alice", "exp": _in_an_hour()}, config.SECRET_KEY, algorithm=config.ALGORITHM)
    with pytest.raises(InvalidToken):
        verify_token(token)
    token = jwt.encode({"sub": "1", "exp": _in_an_hour()}, config.SECRET_KEY, algorithm=config.ALGORITHM)
    with pytest.raises(InvalidToken):
        verify_token(token)


def test_token_without_expiry_rejected(alice):
    token = jwt.encode({"sub": str(alice.id), "username": "alice"}, config.SECRET_KEY, algorithm=config.ALGORITHM)
    with pytest.raises(InvalidToken):
        verify_token(token)


# --- Todo store ---

def test_create_todo_defaults(test_db_session: Session, alice):
    todo = create_todo(test_db_session, alice.id, " Buy milk ")
    assert todo.text == "Buy milk"
    assert todo.completed is False
    assert todo.position == 0
    assert todo.user_id == alice.id
    assert todo.created_at == todo.updated_at


def test_create_todo_rejects_blank_text(test_db_session: Session, alice):
    for text in ("", "   ", None):
        with pytest.raises(ValidationError):
            create_todo(test_db_session, alice.id, text)
    assert list_todos(test_db_session, alice.id) == []


def test_list_is_owner_scoped(test_db_session: Session, alice, bob):
    create_todo(test_db_session, alice.id, "alice's")
    create_todo(test_db_session, bob.id, "bob's")
    assert [t.text for t in list_todos(test_db_session, alice.id)] == ["alice's"]
    assert [t.text for t in list_todos(test_db_session, bob.id)] == ["bob's"]


def test_update_requires_a_field(test_db_session: Session, alice):
    todo = create_todo(test_db_session, alice.id, "Task")
    with pytest.raises(ValidationError):
        update_todo(test_db_session, todo.id, alice.id)


def test_update_moves_updated_at_forward(test_db_session: Session, alice):
    todo = create_todo(test_db_session, alice.id, "Task")
    before = as_utc(todo.updated_at)
    updated = update_todo(test_db_session, todo.id, alice.id, completed=True)
    assert updated.completed is True
    assert as_utc(updated.updated_at) > before
    again = update_todo(test_db_session, todo.id, alice.id, text="Renamed")
    assert again.text == "Renamed"
    assert again.completed is True


def test_cross_owner_update_and_delete_are_not_found(test_db_session: Session, alice, bob):
    todo = create_todo(test_db_session, alice.id, "Private")
    with pytest.raises(NotFound):
        update_todo(test_db_session, todo.id, bob.id, completed=True)
    with pytest.raises(NotFound):
        delete_todo(test_db_session, todo.id, bob.id)
    assert list_todos(test_db_session, alice.id)[0].completed is False


def test_delete_is_not_repeatable(test_db_session: Session, alice):
    todo = create_todo(test_db_session, alice.id, "Once")
    delete_todo(test_db_session, todo.id, alice.id)
    with pytest.raises(NotFound):
        delete_todo(test_db_session, todo.id, alice.id)
