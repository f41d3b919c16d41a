from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps

import psycopg
from flask import flash, redirect, request, session, url_for
from werkzeug.security import check_password_hash, generate_password_hash

from .enums import UserType
from .repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"
MIN_PASSWORD_LENGTH = 6


class AuthError(Exception):
    pass


class InvalidCredentialsError(AuthError):
    def __init__(self) -> None:
        super().__init__("Invalid email or password")


class NotApprovedError(AuthError):
    def __init__(self) -> None:
        super().__init__("Your account is not approved yet. Please contact an administrator.")


class RegistrationError(AuthError):
    pass


@dataclass(frozen=True)
class StaffUser:
    su_id: int
    su_email: str
    su_type: UserType
    su_is_approve: bool


class AuthService:
    def __init__(self, *, db, user_repo: UserRepository) -> None:
        self.db = db
        self.user_repo = user_repo

    def authenticate(self, email: str, password: str) -> StaffUser:
        email = (email or "").strip()
        if not email or not password:
            raise InvalidCredentialsError()

        with self.db.session() as conn:
            row = self.user_repo.get_by_email(conn, email)

        if row is None or not check_password_hash(row["su_password_hash"], password):
            logger.info("Failed login for %s", email)
            raise InvalidCredentialsError()

        # credentials are valid; the approval flag is a separate gate
        if not row["su_is_approve"]:
            logger.info("Login refused for unapproved account %s", email)
            raise NotApprovedError()

        return StaffUser(
            su_id=int(row["su_id"]),
            su_email=row["su_email"],
            su_type=UserType.parse(row["su_type"]),
            su_is_approve=True,
        )

    def register(self, email: str, password: str) -> dict:
        """Create an unapproved account; login stays refused until an admin approves it."""
        email = (email or "").strip()
        if "@" not in email:
            raise RegistrationError("Please enter a valid email")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise RegistrationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        try:
            with self.db.transaction() as conn:
                if self.user_repo.get_by_email(conn, email) is not None:
                    raise RegistrationError("An account with this email already exists")
                row = self.user_repo.create(conn, email, generate_password_hash(password))
        except psycopg.errors.UniqueViolation:
            raise RegistrationError("An account with this email already exists") from None

        logger.info("Registered account %s, awaiting approval", email)
        return row


def login_user(user: StaffUser) -> None:
    session.clear()
    session[SESSION_USER_KEY] = user.su_id
    session["user_email"] = user.su_email


def logout_user() -> None:
    session.pop(SESSION_USER_KEY, None)
    session.pop("user_email", None)


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if session.get(SESSION_USER_KEY) is None:
            flash("Please log in first", "warning")
            return redirect(url_for("login", next=request.path))
        return view(*args, **kwargs)

    return wrapped
