# src/todo_sync/auth/authenticator.py

from __future__ import annotations

import hashlib
import hmac
import logging
import re
import secrets
import sqlite3
import threading
import time
from pathlib import Path

from ..core.ports import Identity, IdentityListener, Unsubscribe
from ..errors import AuthError

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PBKDF2_ROUNDS = 120_000


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email or ""))


def _hash_password(password: str, salt: bytes) -> str:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _PBKDF2_ROUNDS).hex()


class LocalAuthenticator:
    """
    Email/password authenticator backed by a local SQLite users table.

    Stands in for a hosted identity provider. The identity's email is the
    partition key for tasks; display name defaults to the email's local part.

    Every failure stores a human-readable message in `error` and raises
    AuthError with the same message. Success clears `error`.
    """

    def __init__(self, db_path: str | Path = "users.sqlite3", *, min_password_length: int = 5) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._min_password_length = int(min_password_length)
        self._identity: Identity | None = None
        self._error: str | None = None
        self._listeners: dict[int, IdentityListener] = {}
        self._next_token = 0
        self._lock = threading.Lock()
        self._ensure_schema()

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    email TEXT PRIMARY KEY,
                    name TEXT,
                    picture TEXT,
                    salt TEXT NOT NULL,
                    password_hash TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS password_resets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL REFERENCES users(email) ON DELETE CASCADE,
                    token TEXT NOT NULL,
                    requested_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def _fail(self, message: str) -> AuthError:
        self._error = message
        logger.info("Auth failure: %s", message)
        return AuthError(message)

    def _check_credentials(self, email: str, password: str) -> str:
        email = (email or "").strip()
        password = password or ""
        if not email and not password.strip():
            raise self._fail("Please enter both email and password.")
        if not email:
            raise self._fail("Please enter your email address.")
        if not password.strip():
            raise self._fail("Please enter your password.")
        if not is_valid_email(email):
            raise self._fail("Please enter a valid email address.")
        if len(password) < self._min_password_length:
            raise self._fail(f"Password must be at least {self._min_password_length} characters long.")
        return email.lower()

    def _set_identity(self, identity: Identity | None) -> None:
        self._identity = identity
        with self._lock:
            listeners = list(self._listeners.values())
        for listener in listeners:
            try:
                listener(identity)
            except Exception:
                logger.exception("Identity listener failed")

    @staticmethod
    def _row_to_identity(row: sqlite3.Row) -> Identity:
        return Identity(email=row["email"], name=row["name"], picture=row["picture"])

    # ---- public API ----

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def error(self) -> str | None:
        return self._error

    def add_listener(self, listener: IdentityListener) -> Unsubscribe:
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._listeners[token] = listener

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(token, None)

        return unsubscribe

    def login(self) -> None:
        """Interactive provider login (OAuth). Not available for the local provider."""
        self._error = None
        raise self._fail("No identity provider configured. Sign in with email and password.")

    def logout(self) -> None:
        self._error = None
        if self._identity is not None:
            logger.info("Signed out email=%s", self._identity.email)
        self._set_identity(None)

    def sign_up_with_email(self, email: str, password: str) -> Identity:
        email = self._check_credentials(email, password)
        salt = secrets.token_bytes(16)
        name = email.split("@", 1)[0]

        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO users(email, name, picture, salt, password_hash, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                (email, name, None, salt.hex(), _hash_password(password, salt), time.time()),
            )
            conn.commit()
        except sqlite3.IntegrityError:
            raise self._fail("An account with this email already exists.") from None
        finally:
            conn.close()

        identity = Identity(email=email, name=name)
        self._error = None
        logger.info("Signed up email=%s", email)
        self._set_identity(identity)
        return identity

    def sign_in_with_email(self, email: str, password: str) -> Identity:
        email = self._check_credentials(email, password)

        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        finally:
            conn.close()

        if row is None:
            raise self._fail("Invalid email or password.")
        expected = row["password_hash"]
        actual = _hash_password(password, bytes.fromhex(row["salt"]))
        if not hmac.compare_digest(expected, actual):
            raise self._fail("Invalid email or password.")

        identity = self._row_to_identity(row)
        self._error = None
        logger.info("Signed in email=%s", email)
        self._set_identity(identity)
        return identity

    def send_password_reset(self, email: str) -> None:
        """
        Record a reset request for a known account.

        No mail is sent by the local provider; the token is only logged at DEBUG.
        """
        email = (email or "").strip().lower()
        if not email:
            raise self._fail("Please enter your email address.")
        if not is_valid_email(email):
            raise self._fail("Please enter a valid email address.")

        token = secrets.token_urlsafe(24)
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT email FROM users WHERE email = ?", (email,)).fetchone()
            if row is None:
                raise self._fail("No account found for this email.")
            conn.execute(
                "INSERT INTO password_resets(email, token, requested_at) VALUES (?, ?, ?)",
                (email, token, time.time()),
            )
            conn.commit()
        finally:
            conn.close()

        self._error = None
        logger.info("Password reset requested email=%s", email)
        logger.debug("Password reset token email=%s token=%s", email, token)

    def count_reset_requests(self, email: str) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute(
                "SELECT COUNT(*) FROM password_resets WHERE email = ?",
                ((email or "").strip().lower(),),
            ).fetchone()
            return int(n)
        finally:
            conn.close()
