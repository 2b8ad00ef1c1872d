# Overview: Service-layer operations for auth; password hashing, bearer tokens and user lookup.

"""
Authentication Service

Passwords are hashed with bcrypt. Bearer tokens are stateless HS256 JWTs
signed with JWT_SECRET and carrying {id, role, email, exp}.

DEV BYPASS: when ALLOW_DEV_AUTH is on, a request without a usable token is
attributed to a hinted user, the first user, or a freshly created dev admin
(see decorators.require_auth). Production never takes that path.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from flask import current_app
from jwt.exceptions import PyJWTError

from ..extensions import db
from ..models import User, USER_ROLES
from ..validation import ConflictError, FieldErrors, EMAIL_RE


logger = logging.getLogger(__name__)

DEV_USER_EMAIL = "dev@local.test"
DEV_USER_PASSWORD = "dev123"


class AuthError(Exception):
    """Raised for bad credentials or an unusable token (HTTP 401)."""
    pass


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=10)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def normalize_email(email) -> str:
    return str(email or "").strip().lower()


def issue_token(user: User) -> str:
    cfg = current_app.config
    now = datetime.now(timezone.utc)
    payload = {
        "id": user.id,
        "role": user.role,
        "email": user.email,
        "iat": now,
        "exp": now + timedelta(days=cfg["JWT_EXPIRES_DAYS"]),
    }
    return jwt.encode(payload, cfg["JWT_SECRET"], algorithm=cfg["JWT_ALGORITHM"])


def decode_token(token: str) -> dict:
    """Verify signature and expiry. Raises AuthError on any failure."""
    cfg = current_app.config
    try:
        return jwt.decode(
            token,
            cfg["JWT_SECRET"],
            algorithms=[cfg["JWT_ALGORITHM"]],
            options={"require": ["exp"]},
        )
    except PyJWTError as e:
        raise AuthError("Invalid token") from e


def normalize_token_payload(payload) -> tuple[int | None, str | None]:
    """Accept the id under id/userId/uid/sub and the email under email/user_email."""
    if not isinstance(payload, dict):
        return None, None
    raw_id = payload.get("id") or payload.get("userId") or payload.get("uid") or payload.get("sub")
    email = payload.get("email") or payload.get("user_email")
    user_id = None
    if raw_id is not None:
        try:
            user_id = int(raw_id)
        except (TypeError, ValueError):
            user_id = None
    return user_id, normalize_email(email) or None


def find_user_for_token(token: str) -> User | None:
    """Resolve a verified token to its DB user (by id first, then email)."""
    user_id, email = normalize_token_payload(decode_token(token))
    if user_id is not None:
        user = db.session.get(User, user_id)
        if user:
            return user
    if email:
        return db.session.query(User).filter_by(email=email).first()
    return None


def create_user(*, email: str, name: str, password: str, role: str = "ADMIN") -> User:
    """
    Create a user. Raises ConflictError on duplicate email and ValueError
    on an unknown role. Caller commits.
    """
    email = normalize_email(email)
    role = (role or "ADMIN").upper()
    if role not in USER_ROLES:
        raise ValueError(f"role must be one of: {', '.join(sorted(USER_ROLES))}")
    if db.session.query(User).filter_by(email=email).first():
        raise ConflictError("Email already in use")

    user = User(email=email, name=name, role=role, password_hash=hash_password(password))
    db.session.add(user)
    db.session.flush()
    return user


def ensure_seed_admin() -> User | None:
    """If the user table is empty, create the configured admin. Returns it, or None."""
    if db.session.query(User.id).first() is not None:
        return None

    cfg = current_app.config
    user = create_user(
        email=cfg["SEED_ADMIN_EMAIL"],
        name="Admin",
        password=cfg["SEED_ADMIN_PASSWORD"],
        role="ADMIN",
    )
    db.session.commit()
    logger.warning("No users found; created admin %s (change SEED_ADMIN_PASSWORD)", user.email)
    return user


def authenticate(email: str, password: str) -> User:
    email = normalize_email(email)
    errors = FieldErrors()
    if not EMAIL_RE.match(email):
        errors.add("email", "must be a valid email address")
    if not password:
        errors.add("password", "is required")
    elif not isinstance(password, str):
        errors.add("password", "must be a string")
    errors.raise_if_any()

    if current_app.config["ALLOW_DEV_AUTH"]:
        ensure_seed_admin()

    user = db.session.query(User).filter_by(email=email).first()
    if user is None or not verify_password(password, user.password_hash):
        raise AuthError("Invalid credentials")
    return user


def register_user(*, name: str, email: str, password: str) -> User:
    name = str(name or "").strip()
    email = normalize_email(email)
    password = password or ""

    errors = FieldErrors()
    if len(name) < 2:
        errors.add("name", "must be at least 2 characters")
    if not EMAIL_RE.match(email):
        errors.add("email", "must be a valid email address")
    if not isinstance(password, str):
        errors.add("password", "must be a string")
    elif len(password) < 6:
        errors.add("password", "must be at least 6 characters")
    errors.raise_if_any()

    user = create_user(email=email, name=name, password=password, role="ADMIN")
    db.session.commit()
    return user


def get_or_create_dev_user(hint_id=None, hint_email=None) -> User:
    """Hinted user, else the oldest user, else a new dev admin."""
    if hint_id:
        try:
            user = db.session.get(User, int(hint_id))
        except (TypeError, ValueError):
            user = None
        if user:
            return user
    if hint_email:
        user = db.session.query(User).filter_by(email=normalize_email(hint_email)).first()
        if user:
            return user

    first = db.session.query(User).order_by(User.created_at.asc(), User.id.asc()).first()
    if first:
        return first

    user = create_user(email=DEV_USER_EMAIL, name="Dev Admin", password=DEV_USER_PASSWORD, role="ADMIN")
    db.session.commit()
    return user
