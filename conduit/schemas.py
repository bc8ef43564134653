from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def _as_utc(value: datetime) -> datetime:
    # Some drivers hand back naive datetimes for timestamptz columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDateTime = Annotated[datetime, AfterValidator(_as_utc)]


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire (``tagList``, ``createdAt``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- User ---
#
# Request fields are all optional: blank/missing values are reported by
# conduit.validation as field-keyed errors rather than by pydantic.

class UserRegister(CamelModel):
    username: str | None = None
    email: str | None = None
    password: str | None = None


class UserLogin(CamelModel):
    email: str | None = None
    password: str | None = None


class UserUpdate(CamelModel):
    username: str | None = None
    email: str | None = None
    password: str | None = None
    bio: str | None = None
    image: str | None = None


class UserRegisterRequest(BaseModel):
    user: UserRegister


class UserLoginRequest(BaseModel):
    user: UserLogin


class UserUpdateRequest(BaseModel):
    user: UserUpdate


class UserInfo(CamelModel):
    username: str
    email: str
    bio: str | None = None
    image: str | None = None
    token: str


class UserResponse(BaseModel):
    user: UserInfo


# --- Profile ---

class ProfileInfo(CamelModel):
    username: str
    bio: str | None = None
    image: str | None = None
    following: bool = False


class ProfileResponse(BaseModel):
    profile: ProfileInfo


# --- Article ---

class ArticleCreate(CamelModel):
    title: str | None = None
    description: str | None = None
    body: str | None = None
    tag_list: list[str] | None = None


class ArticleUpdate(CamelModel):
    title: str | None = None
    description: str | None = None
    body: str | None = None


class ArticleCreateRequest(BaseModel):
    article: ArticleCreate


class ArticleUpdateRequest(BaseModel):
    article: ArticleUpdate


class ArticleContent(CamelModel):
    slug: str
    title: str
    description: str | None = None
    body: str | None = None
    tag_list: list[str] = []
    created_at: UtcDateTime
    updated_at: UtcDateTime
    favorited: bool = False
    favorites_count: int = 0
    author: ProfileInfo


class ArticleResponse(BaseModel):
    article: ArticleContent


class ArticleListResponse(CamelModel):
    articles: list[ArticleContent]
    articles_count: int


# --- Comment ---

class CommentCreate(CamelModel):
    body: str | None = None


class CommentCreateRequest(BaseModel):
    comment: CommentCreate


class CommentContent(CamelModel):
    id: int
    created_at: UtcDateTime
    updated_at: UtcDateTime
    body: str
    author: ProfileInfo


class CommentResponse(BaseModel):
    comment: CommentContent


class CommentListResponse(BaseModel):
    comments: list[CommentContent]


# --- Tags ---

class TagListResponse(BaseModel):
    tags: list[str]
