"""
User service: registration, login, profile edits and the user/profile
projections.

Uniqueness of username and email is checked with a query before the flush
so the error names the offending field; the database unique constraints
are the backstop for a concurrent insert that slips past the check.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from conduit import security, validation
from conduit.exceptions import DuplicateKey, ValidationError
from conduit.models import User
from conduit.schemas import UserLogin, UserRegister, UserUpdate
from conduit.services import relationship_service

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Projections
# ---------------------------------------------------------------------------

def get_user_info(user: User, include_token: bool = False) -> dict:
    """The caller's own account view; the token is only added on request."""
    data = {
        "username": user.username,
        "email": user.email,
        "bio": user.bio,
        "image": user.image,
    }
    if include_token:
        data["token"] = security.issue_token(user)
    return data


def get_profile_info(user: User, viewer: User | None = None) -> dict:
    """
    Public view of *user*.  ``following`` is relative to *viewer*, whose
    relationships must already be loaded.
    """
    return {
        "username": user.username,
        "bio": user.bio,
        "image": user.image,
        "following": (
            relationship_service.is_following(viewer, user.id) if viewer is not None else False
        ),
    }


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

async def get_user_by_id(
    db: AsyncSession, user_id, with_relationships: bool = False
) -> User | None:
    q = select(User).where(User.id == int(user_id))
    if with_relationships:
        q = q.options(selectinload(User.following), selectinload(User.favorites))
    result = await db.execute(q)
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username.lower()))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def _ensure_unique(
    db: AsyncSession, field: str, value: str, exclude_id: int | None = None
) -> None:
    q = select(User.id).where(getattr(User, field) == value)
    if exclude_id is not None:
        q = q.where(User.id != exclude_id)
    if (await db.execute(q)).first() is not None:
        raise DuplicateKey(field)


async def _flush_user(db: AsyncSession) -> None:
    try:
        await db.flush()
    except IntegrityError as exc:
        raise DuplicateKey("username or email") from exc


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def register_user(db: AsyncSession, data: UserRegister) -> User:
    """
    Create a user with a freshly salted password.

    Raises ``ValidationError`` for blank/invalid fields and ``DuplicateKey``
    when the username or email is taken.
    """
    errors: dict[str, str] = {}
    username = validation.clean_username(errors, data.username)
    email = validation.clean_email(errors, data.email)
    password = validation.clean_password(errors, data.password)
    validation.raise_if_errors(errors)

    await _ensure_unique(db, "username", username)
    await _ensure_unique(db, "email", email)

    user = User(username=username, email=email, following=[], favorites=[])
    security.set_password(user, password)
    db.add(user)
    await _flush_user(db)

    logger.info("Registered user %s (id=%s)", user.username, user.id)
    return user


async def authenticate(db: AsyncSession, data: UserLogin) -> User:
    """Return the user matching the email/password pair."""
    errors: dict[str, str] = {}
    email = validation.clean_required(errors, "email", data.email)
    password = validation.clean_password(errors, data.password)
    validation.raise_if_errors(errors)

    user = await get_user_by_email(db, email)
    if user is None or not security.valid_password(user, password):
        logger.info("Failed login for %s", email)
        raise ValidationError({"email or password": "is invalid"})
    return user


async def update_user(db: AsyncSession, user: User, data: UserUpdate) -> User:
    """
    Apply the fields present in *data* to *user*.

    Only fields the client actually sent are touched; sending ``bio: null``
    clears the bio, omitting it leaves it alone.
    """
    sent = data.model_fields_set
    errors: dict[str, str] = {}

    username = validation.clean_username(errors, data.username) if "username" in sent else None
    email = validation.clean_email(errors, data.email) if "email" in sent else None
    password = validation.clean_password(errors, data.password) if "password" in sent else None
    validation.raise_if_errors(errors)

    if username is not None and username != user.username:
        await _ensure_unique(db, "username", username, exclude_id=user.id)
        user.username = username
    if email is not None and email != user.email:
        await _ensure_unique(db, "email", email, exclude_id=user.id)
        user.email = email
    if "bio" in sent:
        user.bio = data.bio
    if "image" in sent:
        user.image = data.image
    if password is not None:
        security.set_password(user, password)

    await _flush_user(db)
    return user
