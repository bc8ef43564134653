from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.database import get_db
from conduit.dependencies import (
    PaginationParams,
    get_article,
    get_comment,
    get_current_user,
    get_optional_user,
)
from conduit.models import Article, Comment, User
from conduit.schemas import (
    ArticleCreateRequest,
    ArticleListResponse,
    ArticleResponse,
    ArticleUpdateRequest,
    CommentCreateRequest,
    CommentListResponse,
    CommentResponse,
)
from conduit.services import article_service, comment_service, relationship_service

router = APIRouter(prefix="/api/articles", tags=["articles"])


def _article_list(articles: list[Article], total: int, viewer: User | None) -> dict:
    return {
        "articles": [article_service.get_article_content(a, viewer) for a in articles],
        "articles_count": total,
    }


# --- Articles ---

@router.get("", response_model=ArticleListResponse)
async def list_articles(
    tag: str | None = None,
    author: str | None = None,
    favorited: str | None = None,
    pagination: PaginationParams = Depends(),
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    articles, total = await article_service.list_articles(
        db, tag, author, favorited, pagination.limit, pagination.offset
    )
    return _article_list(articles, total, viewer)


@router.get("/feed", response_model=ArticleListResponse)
async def feed(
    pagination: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    articles, total = await article_service.feed_articles(
        db, user, pagination.limit, pagination.offset
    )
    return _article_list(articles, total, user)


@router.post("", status_code=201, response_model=ArticleResponse)
async def create_article(
    data: ArticleCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.create_article(db, user, data.article)
    return {"article": article_service.get_article_content(article, user)}


@router.get("/{slug}", response_model=ArticleResponse)
async def get_article_view(
    article: Article = Depends(get_article),
    viewer: User | None = Depends(get_optional_user),
):
    return {"article": article_service.get_article_content(article, viewer)}


@router.put("/{slug}", response_model=ArticleResponse)
async def update_article(
    data: ArticleUpdateRequest,
    article: Article = Depends(get_article),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    article = await article_service.update_article(db, article, user, data.article)
    return {"article": article_service.get_article_content(article, user)}


@router.delete("/{slug}", status_code=204)
async def delete_article(
    article: Article = Depends(get_article),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await article_service.delete_article(db, article, user)
    return Response(status_code=204)


# --- Favorites ---

@router.post("/{slug}/favorite", response_model=ArticleResponse)
async def favorite_article(
    article: Article = Depends(get_article),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await relationship_service.favorite_article(db, user, article)
    return {"article": article_service.get_article_content(article, user)}


@router.delete("/{slug}/favorite", response_model=ArticleResponse)
async def unfavorite_article(
    article: Article = Depends(get_article),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await relationship_service.unfavorite_article(db, user, article)
    return {"article": article_service.get_article_content(article, user)}


# --- Comments ---

@router.get("/{slug}/comments", response_model=CommentListResponse)
async def list_comments(
    article: Article = Depends(get_article),
    viewer: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    comments = await comment_service.list_comments(db, article)
    return {"comments": [comment_service.get_comment_content(c, viewer) for c in comments]}


@router.post("/{slug}/comments", status_code=201, response_model=CommentResponse)
async def add_comment(
    data: CommentCreateRequest,
    article: Article = Depends(get_article),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.add_comment(db, article, user, data.comment)
    return {"comment": comment_service.get_comment_content(comment, user)}


@router.delete("/{slug}/comments/{comment_id}", status_code=204)
async def delete_comment(
    comment: Comment = Depends(get_comment),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await comment_service.delete_comment(db, comment, user)
    return Response(status_code=204)
