"""User accounts: creation, authentication and superadmin management."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError
from sqlmodel import select

from ..domain.roles import Actor
from ..errors import BadInputError, ConflictError, NotFoundError
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models.user import User
from .permissions import can_superadmin, require

logger = get_logger(__name__)

_hasher = PasswordHasher()


def _clean_username(username: str) -> str:
    username = (username or "").strip()
    if not username:
        raise BadInputError("Username is required")
    return username


def hash_password(password: str) -> str:
    if not password:
        raise BadInputError("Password cannot be empty")
    return _hasher.hash(password)


def list_users(*, session_factory: SessionFactory) -> list[User]:
    """Return all users ordered by username."""
    with session_factory() as session:
        users = list(session.exec(select(User).order_by(User.username)).all())
        session.expunge_all()
    return users


def get_user(user_id: int, *, session_factory: SessionFactory) -> User:
    with session_factory() as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        session.expunge(user)
        return user


def get_user_by_username(username: str, *, session_factory: SessionFactory) -> Optional[User]:
    """Fetch a user by username."""
    username = username.strip()
    with session_factory() as session:
        user = session.exec(select(User).where(User.username == username)).first()
        if user:
            session.expunge(user)
        return user


def create_user(
    *,
    username: str,
    password: str,
    superadmin: bool = False,
    session_factory: SessionFactory,
) -> User:
    """Create a new user with a hashed password."""

    username = _clean_username(username)
    password_hash = hash_password(password)
    with session_factory() as session:
        existing = session.exec(select(User).where(User.username == username)).first()
        if existing:
            raise ConflictError("Username already exists")
        user = User(username=username, password_hash=password_hash, superadmin=superadmin)
        session.add(user)
        session.commit()
        session.refresh(user)
        session.expunge(user)
    logger.info("User created", extra={"user_id": user.id, "superadmin": superadmin})
    return user


def authenticate(
    *,
    username: str,
    password: str,
    session_factory: SessionFactory,
) -> Optional[User]:
    """Validate credentials and return the user when correct and active."""

    username = username.strip()
    if not username:
        return None
    with session_factory() as session:
        user = session.exec(select(User).where(User.username == username)).first()
        if user is None or not user.active:
            return None
        try:
            _hasher.verify(user.password_hash, password)
        except (VerifyMismatchError, InvalidHash, VerificationError):
            return None

        user.last_login = datetime.now(timezone.utc)
        session.add(user)
        session.commit()
        session.refresh(user)
        session.expunge(user)
        return user


def set_active(
    actor: Actor, user_id: int, active: bool, *, session_factory: SessionFactory
) -> User:
    """Enable or disable a user. Superadmin only; nobody can disable themself."""

    require(can_superadmin(actor))
    if not active and actor.user_id == user_id:
        raise BadInputError("You cannot disable your own account")
    with session_factory() as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        user.active = active
        session.add(user)
        session.commit()
        session.refresh(user)
        session.expunge(user)
    logger.info("User activation changed", extra={"user_id": user_id, "active": active})
    return user


def set_superadmin(
    actor: Actor, user_id: int, superadmin: bool, *, session_factory: SessionFactory
) -> User:
    """Grant or revoke the superadmin flag. Superadmin only."""

    require(can_superadmin(actor))
    if not superadmin and actor.user_id == user_id:
        raise BadInputError("You cannot revoke your own superadmin privileges")
    with session_factory() as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        user.superadmin = superadmin
        session.add(user)
        session.commit()
        session.refresh(user)
        session.expunge(user)
        return user


def reset_password(
    actor: Actor, user_id: int, password: str, *, session_factory: SessionFactory
) -> User:
    """Reset a password; users may reset their own, superadmins anyone's."""

    if actor.user_id != user_id:
        require(can_superadmin(actor))
    password_hash = hash_password(password)
    with session_factory() as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        user.password_hash = password_hash
        session.add(user)
        session.commit()
        session.refresh(user)
        session.expunge(user)
        return user


def update_user(
    actor: Actor,
    user_id: int,
    *,
    username: Optional[str] = None,
    password: Optional[str] = None,
    superadmin: Optional[bool] = None,
    session_factory: SessionFactory,
) -> User:
    """Update username, password or superadmin flag of an account.

    Users may edit their own account; superadmins may edit anyone's and are
    the only ones who can change the superadmin flag.
    """

    if superadmin is not None:
        require(can_superadmin(actor))
        if not superadmin and actor.user_id == user_id:
            raise BadInputError("You cannot revoke your own superadmin privileges")
    elif actor.user_id != user_id:
        require(can_superadmin(actor))
    if username is None and password is None and superadmin is None:
        raise BadInputError("No fields to update")

    new_username = _clean_username(username) if username is not None else None
    password_hash = hash_password(password) if password is not None else None
    with session_factory() as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        if new_username is not None and new_username != user.username:
            taken = session.exec(
                select(User.id).where(User.username == new_username).where(User.id != user_id)
            ).first()
            if taken is not None:
                raise ConflictError("Username already exists")
            user.username = new_username
        if password_hash is not None:
            user.password_hash = password_hash
        if superadmin is not None:
            user.superadmin = superadmin
        session.add(user)
        session.commit()
        session.refresh(user)
        session.expunge(user)

    logger.info(
        "User updated",
        extra={
            "user_id": user_id,
            "actor": actor.user_id,
            "fields": [
                name
                for name, value in (
                    ("username", username),
                    ("password", password),
                    ("superadmin", superadmin),
                )
                if value is not None
            ],
        },
    )
    return user
