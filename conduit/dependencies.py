"""
FastAPI dependencies shared by the routers.

- ``get_current_user`` / ``get_optional_user``: the two authentication
  modes.  Both return the caller with ``following``/``favorites`` loaded so
  projections can compute the viewer-relative flags.
- ``get_article`` / ``get_profile`` / ``get_comment``: resolve path
  parameters to entities and raise ``NotFound`` before the handler runs.
- ``PaginationParams``: ``limit``/``offset`` query parameters.
"""
from fastapi import Depends, Header, Query
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.ext.asyncio import AsyncSession

from conduit import security
from conduit.config import settings
from conduit.database import get_db
from conduit.exceptions import NotFound, Unauthorized
from conduit.models import Article, Comment, User
from conduit.services import article_service, comment_service, user_service

# Both schemes are in use by clients: "Bearer <jwt>" and "Token <jwt>".
_AUTH_SCHEMES = {"bearer", "token"}


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

def _extract_token(authorization: str | None) -> str | None:
    """Return the raw JWT from the header, None if there is no header."""
    if not authorization:
        return None
    scheme, token = get_authorization_scheme_param(authorization)
    if scheme.lower() not in _AUTH_SCHEMES or not token:
        raise Unauthorized("is invalid")
    return token


async def _user_from_token(db: AsyncSession, token: str) -> User | None:
    payload = security.verify_token(token)
    try:
        user_id = int(payload["id"])
    except (TypeError, ValueError):
        raise Unauthorized("is invalid")
    return await user_service.get_user_by_id(db, user_id, with_relationships=True)


async def get_optional_user(
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """
    Caller identity for public reads.

    No header means an anonymous viewer; a header that does not carry a
    valid token is still rejected.
    """
    token = _extract_token(authorization)
    if token is None:
        return None
    return await _user_from_token(db, token)


async def get_current_user(
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    token = _extract_token(authorization)
    if token is None:
        raise Unauthorized("is missing")
    user = await _user_from_token(db, token)
    if user is None:
        # Signed for an account that no longer exists.
        raise Unauthorized("is invalid")
    return user


# ---------------------------------------------------------------------------
# Path parameters
# ---------------------------------------------------------------------------

async def get_article(slug: str, db: AsyncSession = Depends(get_db)) -> Article:
    article = await article_service.get_article_by_slug(db, slug)
    if article is None:
        raise NotFound("article", slug)
    return article


async def get_profile(username: str, db: AsyncSession = Depends(get_db)) -> User:
    user = await user_service.get_user_by_username(db, username)
    if user is None:
        raise NotFound("profile", username)
    return user


async def get_comment(
    comment_id: int,
    article: Article = Depends(get_article),
    db: AsyncSession = Depends(get_db),
) -> Comment:
    comment = await comment_service.get_comment(db, article, comment_id)
    if comment is None:
        raise NotFound("comment", str(comment_id))
    return comment


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

class PaginationParams:
    """
    ``limit``/``offset`` query parameters for article lists.

    ``limit`` is clamped to ``settings.MAX_PAGE_SIZE`` even if the query
    validation allows more, so a settings change is sufficient.
    """

    def __init__(
        self,
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=100,
            description="Number of articles to return (max 100).",
        ),
        offset: int = Query(
            0,
            ge=0,
            description="Number of articles to skip.",
        ),
    ) -> None:
        self.limit = min(limit, settings.MAX_PAGE_SIZE)
        self.offset = offset
