"""
Comment service: comments attached to an article/author pair.

A comment's article and author are fixed at creation.  Comments are never
edited; only their author may delete them.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from conduit import validation
from conduit.exceptions import Forbidden
from conduit.models import Article, Comment, User
from conduit.schemas import CommentCreate
from conduit.services import user_service


def get_comment_content(comment: Comment, viewer: User | None = None) -> dict:
    return {
        "id": comment.id,
        "created_at": comment.created_at,
        "updated_at": comment.updated_at,
        "body": comment.body,
        "author": user_service.get_profile_info(comment.author, viewer),
    }


async def get_comment(db: AsyncSession, article: Article, comment_id: int) -> Comment | None:
    """Return the comment only if it belongs to *article*."""
    q = (
        select(Comment)
        .where(Comment.id == comment_id, Comment.article_id == article.id)
        .options(joinedload(Comment.author))
    )
    result = await db.execute(q)
    return result.unique().scalar_one_or_none()


async def list_comments(db: AsyncSession, article: Article) -> list[Comment]:
    """Comments on *article*, newest first, with authors loaded."""
    q = (
        select(Comment)
        .where(Comment.article_id == article.id)
        .options(joinedload(Comment.author))
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    result = await db.execute(q)
    return list(result.unique().scalars().all())


async def add_comment(
    db: AsyncSession, article: Article, author: User, data: CommentCreate
) -> Comment:
    """Attach a new comment by *author* to *article*."""
    errors: dict[str, str] = {}
    body = validation.clean_required(errors, "body", data.body)
    validation.raise_if_errors(errors)

    comment = Comment(body=body, article_id=article.id, author=author)
    db.add(comment)
    await db.flush()
    return comment


async def delete_comment(db: AsyncSession, comment: Comment, user: User) -> None:
    if comment.author_id != user.id:
        raise Forbidden("comment")
    await db.delete(comment)
    await db.flush()
