"""
In-memory stand-in for the parts of the Supabase client the core uses.

Tables are lists of dicts; the query builder supports the fluent calls the
repositories make (``select``/``insert``/``update``/``delete`` with
``eq``, ``ilike``, ``or_``, ``gte``, ``lte``, ``order``, ``maybe_single``).
Joins are not resolved: rows come back exactly as seeded.

Failures and slow calls are injected per auth method or per table through
``errors`` and ``delays``.
"""

from __future__ import annotations

import itertools
import time
from types import SimpleNamespace
from typing import Any, Callable, Optional

Row = dict[str, Any]


def make_session(
    user_id: str = "u1",
    email: str = "ana@example.com",
    expires_in: int = 3600,
    name: Optional[str] = None,
    access_token: Optional[str] = None,
) -> Row:
    """A session payload shaped like the one Supabase Auth returns."""
    return {
        "access_token": access_token or f"access-{user_id}",
        "refresh_token": f"refresh-{user_id}",
        "expires_at": int(time.time()) + expires_in,
        "expires_in": expires_in,
        "token_type": "bearer",
        "user": {
            "id": user_id,
            "email": email,
            "user_metadata": {"name": name} if name else {},
            "email_confirmed_at": "2024-01-01T00:00:00+00:00",
        },
    }


def _matches(value: Any, expected: Any) -> bool:
    if value == expected:
        return True
    return value is not None and str(value) == str(expected)


def _ilike(value: Any, pattern: str) -> bool:
    needle = pattern.strip("%").lower()
    return needle in str(value or "").lower()


class FakeQuery:
    """Fluent query against one in-memory table."""

    def __init__(self, client: "FakeSupabase", table: str) -> None:
        self._client = client
        self._table = table
        self._mode = "select"
        self._payload: Any = None
        self._count: Optional[str] = None
        self._filters: list[Callable[[Row], bool]] = []
        self._order: Optional[tuple[str, bool]] = None
        self._single = False

    # --- verbs ---
    def select(self, columns: str = "*", count: Optional[str] = None) -> "FakeQuery":
        self._mode = "select"
        self._count = count
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self._mode = "insert"
        self._payload = payload
        return self

    def update(self, payload: Row) -> "FakeQuery":
        self._mode = "update"
        self._payload = payload
        return self

    def delete(self) -> "FakeQuery":
        self._mode = "delete"
        return self

    # --- filters ---
    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(lambda row: _matches(row.get(column), value))
        return self

    def ilike(self, column: str, pattern: str) -> "FakeQuery":
        self._filters.append(lambda row: _ilike(row.get(column), pattern))
        return self

    def gte(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(
            lambda row: row.get(column) is not None and str(row[column]) >= str(value)
        )
        return self

    def lte(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(
            lambda row: row.get(column) is not None and str(row[column])[:len(str(value))] <= str(value)
        )
        return self

    def or_(self, expression: str) -> "FakeQuery":
        clauses = []
        for clause in expression.split(","):
            column, operator, pattern = clause.split(".", 2)
            assert operator == "ilike"
            clauses.append((column, pattern))
        self._filters.append(
            lambda row: any(_ilike(row.get(column), pattern) for column, pattern in clauses)
        )
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._order = (column, desc)
        return self

    def maybe_single(self) -> "FakeQuery":
        self._single = True
        return self

    # --- execution ---
    def execute(self) -> Optional[SimpleNamespace]:
        self._client.executed.append((self._table, self._mode))
        delay = self._client.delays.get(self._table)
        if delay:
            time.sleep(delay)
        error = self._client.errors.get(self._table)
        if error is not None:
            raise error

        rows = self._client.tables.setdefault(self._table, [])
        if self._mode == "insert":
            payloads = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for payload in payloads:
                row = dict(payload)
                row.setdefault("id", next(self._client.ids))
                rows.append(row)
                inserted.append(dict(row))
            return SimpleNamespace(data=inserted, count=None)

        matched = [row for row in rows if all(check(row) for check in self._filters)]

        if self._mode == "update":
            for row in matched:
                row.update(self._payload)
            return SimpleNamespace(data=[dict(row) for row in matched], count=None)

        if self._mode == "delete":
            for row in matched:
                rows.remove(row)
            return SimpleNamespace(data=[dict(row) for row in matched], count=None)

        if self._order is not None:
            column, desc = self._order
            matched = sorted(
                matched,
                key=lambda row: (row.get(column) is None, str(row.get(column) or "")),
                reverse=desc,
            )
        data = [dict(row) for row in matched]
        count = len(data) if self._count else None
        if self._single:
            if not data:
                return None
            return SimpleNamespace(data=data[0], count=count)
        return SimpleNamespace(data=data, count=count)


class FakeAdminAuth:
    def __init__(self, auth: "FakeAuth") -> None:
        self._auth = auth
        self.created: list[Row] = []
        self.deleted: list[str] = []

    def create_user(self, attributes: Row) -> SimpleNamespace:
        self._auth._enter("admin.create_user", attributes)
        user_id = f"new-{len(self.created) + 1}"
        self.created.append({"id": user_id, **attributes})
        return SimpleNamespace(user=SimpleNamespace(id=user_id, email=attributes["email"]))

    def delete_user(self, user_id: str) -> None:
        self._auth._enter("admin.delete_user", user_id)
        self.deleted.append(user_id)


class FakeAuth:
    """Auth namespace: accounts, the current session and event listeners.

    Like the SDK, the session-changing calls notify listeners before they
    return: ``SIGNED_IN``, ``SIGNED_OUT``, ``TOKEN_REFRESHED`` and
    ``USER_UPDATED``.
    """

    def __init__(self) -> None:
        self.current_session: Optional[Row] = None
        self.accounts: dict[str, tuple[str, str]] = {}  # email -> (password, user_id)
        self.valid_tokens: dict[str, Row] = {}  # access token -> session
        self.confirm_email = False
        self.errors: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}
        self.hooks: dict[str, Callable[[], None]] = {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.listeners: list[Callable[[str, Any], None]] = []
        self.admin = FakeAdminAuth(self)

    def _enter(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        hook = self.hooks.get(name)
        if hook is not None:
            hook()
        delay = self.delays.get(name)
        if delay:
            time.sleep(delay)
        error = self.errors.get(name)
        if error is not None:
            raise error

    def called(self, name: str) -> list[tuple[Any, ...]]:
        return [args for called, args in self.calls if called == name]

    def add_account(self, email: str, password: str, user_id: str) -> None:
        self.accounts[email] = (password, user_id)

    # --- SDK surface ---
    def set_session(self, access_token: str, refresh_token: str) -> SimpleNamespace:
        self._enter("set_session", access_token, refresh_token)
        session = self.valid_tokens.get(access_token)
        if session is None:
            raise Exception("Invalid Refresh Token: Refresh Token Not Found")
        self.current_session = session
        self.emit("TOKEN_REFRESHED", session)
        return SimpleNamespace(session=session, user=session["user"])

    def get_session(self) -> Optional[Row]:
        self._enter("get_session")
        return self.current_session

    def sign_in_with_password(self, credentials: Row) -> SimpleNamespace:
        self._enter("sign_in_with_password", credentials)
        account = self.accounts.get(credentials["email"])
        if account is None or account[0] != credentials["password"]:
            raise Exception("Invalid login credentials")
        session = make_session(account[1], credentials["email"])
        self.current_session = session
        self.emit("SIGNED_IN", session)
        return SimpleNamespace(session=session, user=session["user"])

    def sign_up(self, credentials: Row) -> SimpleNamespace:
        self._enter("sign_up", credentials)
        email = credentials["email"]
        if email in self.accounts:
            raise Exception("User already registered")
        user_id = f"signup-{len(self.accounts) + 1}"
        self.add_account(email, credentials["password"], user_id)
        user = SimpleNamespace(id=user_id, email=email)
        if self.confirm_email:
            return SimpleNamespace(user=user, session=None)
        name = credentials.get("options", {}).get("data", {}).get("name")
        session = make_session(user_id, email, name=name)
        self.current_session = session
        self.emit("SIGNED_IN", session)
        return SimpleNamespace(user=user, session=session)

    def sign_out(self) -> None:
        self._enter("sign_out")
        self.current_session = None
        self.emit("SIGNED_OUT", None)

    def reset_password_for_email(self, email: str, options: Row) -> None:
        self._enter("reset_password_for_email", email, options)

    def update_user(self, attributes: Row) -> SimpleNamespace:
        self._enter("update_user", attributes)
        if self.current_session is not None:
            self.emit("USER_UPDATED", self.current_session)
        return SimpleNamespace(user=None)

    def on_auth_state_change(self, callback: Callable[[str, Any], None]) -> SimpleNamespace:
        self._enter("on_auth_state_change")
        self.listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self.listeners:
                self.listeners.remove(callback)

        return SimpleNamespace(unsubscribe=_unsubscribe)

    def emit(self, event: str, session: Optional[Row]) -> None:
        for callback in list(self.listeners):
            callback(event, session)


class FakeSupabase:
    """Client exposing ``auth`` and ``table(name)``."""

    def __init__(self) -> None:
        self.auth = FakeAuth()
        self.tables: dict[str, list[Row]] = {}
        self.errors: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}
        self.executed: list[tuple[str, str]] = []
        self.ids = itertools.count(1000)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def seed(self, name: str, *rows: Row) -> None:
        self.tables.setdefault(name, []).extend(dict(row) for row in rows)

    def executions(self, table: str) -> int:
        return sum(1 for name, _ in self.executed if name == table)
