"""
Article service: business logic for the Article aggregate.

Design notes
------------
- Every relationship is ``lazy="raise"``; queries state what they load.
  ``joinedload`` covers the many-to-one author, ``selectinload`` the tag
  links, so a page of articles costs a fixed number of statements.
- The slug is derived from the title once, at creation.  Later title edits
  keep the slug, so article URLs never change.  A slug collision is
  reported as ``DuplicateKey("slug")``; the unique constraint backs up the
  pre-check for concurrent creates.
- ``favorites_count`` is never written here; see relationship_service.
- Service functions flush but do not commit; the transaction boundary is
  owned by the ``get_db`` dependency.
"""
import logging

from slugify import slugify as ascii_slugify
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from conduit import validation
from conduit.cache import TAGS_KEY, cache
from conduit.config import settings
from conduit.exceptions import DuplicateKey, Forbidden, ValidationError
from conduit.models import Article, ArticleTag, Comment, Tag, User, favorites, follows
from conduit.schemas import ArticleCreate, ArticleUpdate
from conduit.services import relationship_service, user_service

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def slugify(text: str) -> str:
    """
    Return a URL-safe, lowercase ASCII slug derived from *text*.

    Accented and non-Latin titles are transliterated (``"Café"`` becomes
    ``"cafe"``); anything else outside ``[a-z0-9]`` collapses to one hyphen.
    """
    return ascii_slugify(text, lowercase=True, separator="-")


def _clean_text(value: str | None) -> str | None:
    return value.strip() if value else value


def generate_slug(article: Article) -> None:
    """Set ``article.slug`` from its title unless it already has one."""
    if article.slug:
        return
    slug = slugify(article.title or "")
    if not slug:
        raise ValidationError({"slug": validation.BLANK})
    article.slug = slug


def _with_relations(q):
    return q.options(
        joinedload(Article.author),
        selectinload(Article.tag_links).joinedload(ArticleTag.tag),
    )


def ensure_author(article: Article, user: User) -> None:
    if article.author_id != user.id:
        raise Forbidden("article")


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------

def get_article_content(article: Article, viewer: User | None = None) -> dict:
    """
    Serialise *article* for *viewer*.  ``favorited`` and the author's
    ``following`` flag are both relative to the viewer.
    """
    return {
        "slug": article.slug,
        "title": article.title,
        "description": article.description,
        "body": article.body,
        "tag_list": article.tag_list,
        "created_at": article.created_at,
        "updated_at": article.updated_at,
        "favorited": (
            relationship_service.is_favorite(viewer, article.id) if viewer is not None else False
        ),
        "favorites_count": article.favorites_count,
        "author": user_service.get_profile_info(article.author, viewer),
    }


# ---------------------------------------------------------------------------
# Tag resolution helper (used by create)
# ---------------------------------------------------------------------------

async def _resolve_tags(db: AsyncSession, tag_names: list[str]) -> list[Tag]:
    """
    Return Tag ORM instances for each name in *tag_names*, creating any
    that do not yet exist.
    """
    tags: list[Tag] = []
    for name in tag_names:
        result = await db.execute(select(Tag).where(Tag.name == name))
        tag = result.scalar_one_or_none()
        if not tag:
            tag = Tag(name=name)
            db.add(tag)
            await db.flush()
        tags.append(tag)
    return tags


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

async def get_article_by_slug(db: AsyncSession, slug: str) -> Article | None:
    result = await db.execute(_with_relations(select(Article).where(Article.slug == slug)))
    return result.unique().scalar_one_or_none()


async def list_articles(
    db: AsyncSession,
    tag: str | None = None,
    author: str | None = None,
    favorited: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Article], int]:
    """
    Return one page of articles, newest first, plus the total match count.

    *author* and *favorited* are usernames; an unknown username matches
    nothing rather than being ignored.
    """
    filters = []
    if tag:
        filters.append(
            Article.id.in_(
                select(ArticleTag.article_id).join(Tag).where(Tag.name == tag)
            )
        )
    if author:
        filters.append(
            Article.author_id.in_(select(User.id).where(User.username == author.lower()))
        )
    if favorited:
        filters.append(
            Article.id.in_(
                select(favorites.c.article_id)
                .join(User, User.id == favorites.c.user_id)
                .where(User.username == favorited.lower())
            )
        )
    return await _page(db, filters, limit, offset)


async def feed_articles(
    db: AsyncSession, user: User, limit: int = 20, offset: int = 0
) -> tuple[list[Article], int]:
    """Articles written by the users *user* follows, newest first."""
    followed_ids = select(follows.c.followed_id).where(follows.c.follower_id == user.id)
    return await _page(db, [Article.author_id.in_(followed_ids)], limit, offset)


async def _page(db: AsyncSession, filters: list, limit: int, offset: int):
    limit = min(limit, settings.MAX_PAGE_SIZE)

    count_q = select(func.count()).select_from(Article).where(*filters)
    total: int = (await db.execute(count_q)).scalar_one()

    articles_q = _with_relations(
        select(Article)
        .where(*filters)
        .order_by(Article.created_at.desc(), Article.id.desc())
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(articles_q)
    return list(result.unique().scalars().all()), total


async def get_tags(db: AsyncSession) -> list[str]:
    """Names of every tag used by at least one article, cached in Redis."""
    cached = await cache.get(TAGS_KEY)
    if cached is not None:
        return cached

    q = select(Tag.name).join(ArticleTag, ArticleTag.tag_id == Tag.id).distinct().order_by(Tag.name)
    tags = list((await db.execute(q)).scalars().all())
    await cache.set(TAGS_KEY, tags, ttl=settings.CACHE_TTL_TAGS)
    return tags


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def create_article(db: AsyncSession, author: User, data: ArticleCreate) -> Article:
    """
    Create an article owned by *author*.

    Raises ``ValidationError`` for a blank title and ``DuplicateKey`` when
    another article already has the derived slug.
    """
    errors: dict[str, str] = {}
    title = validation.clean_required(errors, "title", data.title)
    validation.raise_if_errors(errors)

    article = Article(
        title=title,
        description=_clean_text(data.description),
        body=_clean_text(data.body),
        author=author,
        favorites_count=0,
    )
    generate_slug(article)

    existing = await db.execute(select(Article.id).where(Article.slug == article.slug))
    if existing.first() is not None:
        raise DuplicateKey("slug")

    tags = await _resolve_tags(db, validation.clean_tag_list(data.tag_list))
    article.tag_links = [ArticleTag(tag=tag, position=i) for i, tag in enumerate(tags)]

    db.add(article)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise DuplicateKey("slug") from exc

    if tags:
        await cache.invalidate_tags()
    logger.info("Article %s created by %s", article.slug, author.username)
    return article


async def update_article(
    db: AsyncSession, article: Article, user: User, data: ArticleUpdate
) -> Article:
    """
    Update title, description and body of *article*.  Only the author may
    do this; the slug and author never change.
    """
    ensure_author(article, user)

    sent = data.model_fields_set
    if "title" in sent:
        errors: dict[str, str] = {}
        article.title = validation.clean_required(errors, "title", data.title)
        validation.raise_if_errors(errors)
    if "description" in sent:
        article.description = _clean_text(data.description)
    if "body" in sent:
        article.body = _clean_text(data.body)

    await db.flush()
    return article


async def delete_article(db: AsyncSession, article: Article, user: User) -> None:
    """
    Delete *article* with its comments, tag links and favorites rows.

    Only the author may delete.  Users who had favorited the article simply
    lose the membership.
    """
    ensure_author(article, user)

    await db.execute(delete(Comment).where(Comment.article_id == article.id))
    await db.execute(delete(ArticleTag).where(ArticleTag.article_id == article.id))
    await db.execute(delete(favorites).where(favorites.c.article_id == article.id))
    await db.delete(article)
    await db.flush()

    await cache.invalidate_tags()
    logger.info("Article %s deleted by %s", article.slug, user.username)
