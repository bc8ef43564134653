"""
Relationship service: follow/favorite membership and the favorites counter.

Design notes
------------
- ``User.following`` and ``User.favorites`` are membership sets backed by
  the ``follows`` and ``favorites`` association tables.  They are never
  loaded implicitly; ``load_relationships`` must run before any of the
  membership functions below touch a persisted user.
- Membership tests compare ``str(id)`` so that an int primary key and its
  string form (e.g. a JWT claim or a path value) are the same member.
- ``Article.favorites_count`` is a cache of the number of ``favorites``
  rows for the article.  ``recompute_favorites_count`` rebuilds it from
  those rows instead of incrementing, so concurrent recomputes converge on
  a correct count.  Request handlers use ``favorite_article`` /
  ``unfavorite_article``, which always recompute in the same unit of work.
"""
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from conduit.exceptions import ValidationError
from conduit.models import Article, User, favorites

logger = logging.getLogger(__name__)


def _same_id(left, right) -> bool:
    return str(left) == str(right)


async def load_relationships(db: AsyncSession, user: User) -> User:
    """Return *user* with ``following`` and ``favorites`` loaded."""
    q = (
        select(User)
        .where(User.id == user.id)
        .options(selectinload(User.following), selectinload(User.favorites))
    )
    result = await db.execute(q)
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Follow
# ---------------------------------------------------------------------------

def is_following(user: User, target_id) -> bool:
    return any(_same_id(followed.id, target_id) for followed in user.following)


async def follow(db: AsyncSession, user: User, target: User) -> None:
    """Add *target* to ``user.following``.  No-op if already following."""
    if _same_id(user.id, target.id):
        raise ValidationError({"username": "cannot follow yourself"})
    if is_following(user, target.id):
        return
    user.following.append(target)
    await db.flush()


async def unfollow(db: AsyncSession, user: User, target: User) -> None:
    """Remove *target* from ``user.following``.  No-op if not following."""
    for followed in user.following:
        if _same_id(followed.id, target.id):
            user.following.remove(followed)
            await db.flush()
            return


# ---------------------------------------------------------------------------
# Favorite
# ---------------------------------------------------------------------------

def is_favorite(user: User, article_id) -> bool:
    return any(_same_id(fav.id, article_id) for fav in user.favorites)


async def favorite(db: AsyncSession, user: User, article: Article) -> None:
    """
    Add *article* to ``user.favorites`` without touching the counter.

    Callers outside this module want ``favorite_article``.
    """
    if is_favorite(user, article.id):
        return
    user.favorites.append(article)
    await db.flush()


async def unfavorite(db: AsyncSession, user: User, article: Article) -> None:
    for fav in user.favorites:
        if _same_id(fav.id, article.id):
            user.favorites.remove(fav)
            await db.flush()
            return


async def count_favorites(db: AsyncSession, article_id: int) -> int:
    q = select(func.count()).select_from(favorites).where(favorites.c.article_id == article_id)
    return (await db.execute(q)).scalar_one()


async def recompute_favorites_count(db: AsyncSession, article: Article) -> int:
    """
    Overwrite ``article.favorites_count`` with the number of users whose
    favorites contain it, and return that number.
    """
    await db.flush()
    count = await count_favorites(db, article.id)
    if article.favorites_count != count:
        logger.debug(
            "favorites_count for article %s: %s -> %s",
            article.slug, article.favorites_count, count,
        )
    article.favorites_count = count
    await db.flush()
    return count


async def favorite_article(db: AsyncSession, user: User, article: Article) -> None:
    await favorite(db, user, article)
    await recompute_favorites_count(db, article)


async def unfavorite_article(db: AsyncSession, user: User, article: Article) -> None:
    await unfavorite(db, user, article)
    await recompute_favorites_count(db, article)
