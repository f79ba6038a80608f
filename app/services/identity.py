"""
Identity collaborator. Routes talk to an IdentityProvider, never to a concrete backend.

The active provider is named by config IDENTITY_PROVIDER ("module:Class") and built
once per app in `init_identity`; it lives on app.extensions, not in module globals.
"""
from __future__ import annotations

from importlib import import_module
from typing import Optional

from flask import Flask, current_app
from flask_login import current_user as _login_current_user
from flask_login import login_user, logout_user
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.user import User
from app.services.errors import ValidationError
from app.utils.validators import clean_str, is_valid_email

EXTENSION_KEY = "identity"


class InvalidCredentials(ValidationError):
    code = "invalid_credentials"

    def __init__(self):
        super().__init__({"__all__": "Invalid credentials"}, message="Invalid credentials")


class IdentityProvider:
    """sign_in / sign_out / current_user. Implementations keep no module-level state."""

    def sign_in(self, session: Session, email: str, password: str):
        raise NotImplementedError

    def sign_out(self) -> None:
        raise NotImplementedError

    def current_user(self):
        raise NotImplementedError


class LocalIdentityProvider(IdentityProvider):
    """Users table + werkzeug password hashes, session cookie via Flask-Login."""

    def sign_in(self, session: Session, email: str, password: str) -> User:
        email = (email or "").strip()
        if not email or not password:
            raise ValidationError({"__all__": "Email and password are required"})
        user = session.query(User).filter(func.lower(User.email) == email.lower()).one_or_none()
        if not user or not user.is_active or not user.check_password(password):
            current_app.logger.info("login failed for %s", email.lower())
            raise InvalidCredentials()
        login_user(user)
        return user

    def sign_out(self) -> None:
        if _login_current_user.is_authenticated:
            logout_user()

    def current_user(self) -> Optional[User]:
        if _login_current_user.is_authenticated:
            return _login_current_user._get_current_object()
        return None


def _load_class(path: str):
    module_name, _, attr = path.partition(":")
    return getattr(import_module(module_name), attr)


def init_identity(app: Flask) -> IdentityProvider:
    provider_cls = _load_class(app.config.get("IDENTITY_PROVIDER") or "app.services.identity:LocalIdentityProvider")
    provider = provider_cls()
    app.extensions[EXTENSION_KEY] = provider
    return provider


def get_identity() -> IdentityProvider:
    return current_app.extensions[EXTENSION_KEY]


def current_user_id() -> Optional[int]:
    user = get_identity().current_user()
    return getattr(user, "id", None)


def create_user(
    session: Session,
    *,
    email: str,
    password: str,
    display_name: Optional[str] = None,
) -> User:
    email = (email or "").strip().lower()
    errors = {}
    if not email or not is_valid_email(email):
        errors["email"] = "Valid email is required."
    if not password or len(password) < 8:
        errors["password"] = "Password must be at least 8 characters."
    if email and session.query(User).filter(func.lower(User.email) == email).count():
        errors["email"] = "A user with this email already exists."
    if errors:
        raise ValidationError(errors)

    user = User(email=email, display_name=clean_str(display_name), is_active=True)
    user.set_password(password)
    session.add(user)
    session.flush()
    return user
