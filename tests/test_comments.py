"""
Comment endpoint tests: adding, listing and deleting comments on an
article, including ownership checks and the newest-first order.
"""
import pytest
from httpx import AsyncClient


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _register(client: AsyncClient, username: str) -> str:
    resp = await client.post("/api/users", json={"user": {
        "username": username,
        "email": f"{username}@example.com",
        "password": "secret123",
    }})
    assert resp.status_code == 201, resp.text
    return resp.json()["user"]["token"]


def _auth(token: str) -> dict:
    return {"Authorization": f"Token {token}"}


async def _create_article(client: AsyncClient, token: str, title: str = "Commented Article") -> str:
    resp = await client.post("/api/articles", headers=_auth(token), json={"article": {
        "title": title, "description": "d", "body": "b",
    }})
    assert resp.status_code == 201, resp.text
    return resp.json()["article"]["slug"]


async def _comment(client: AsyncClient, token: str, slug: str, body: str) -> dict:
    resp = await client.post(f"/api/articles/{slug}/comments", headers=_auth(token), json={
        "comment": {"body": body},
    })
    assert resp.status_code == 201, resp.text
    return resp.json()["comment"]


# ---------------------------------------------------------------------------
# Add
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_comment(async_client: AsyncClient):
    alice = await _register(async_client, "alice")
    bob = await _register(async_client, "bob")
    slug = await _create_article(async_client, alice)

    comment = await _comment(async_client, bob, slug, "Great post!")
    assert comment["body"] == "Great post!"
    assert isinstance(comment["id"], int)
    assert comment["createdAt"]
    assert comment["updatedAt"]
    assert comment["author"] == {
        "username": "bob", "bio": None, "image": None, "following": False,
    }


@pytest.mark.asyncio
async def test_add_comment_blank_body(async_client: AsyncClient):
    alice = await _register(async_client, "alice")
    slug = await _create_article(async_client, alice)

    resp = await async_client.post(f"/api/articles/{slug}/comments", headers=_auth(alice), json={
        "comment": {"body": "   "},
    })
    assert resp.status_code == 422
    assert resp.json() == {"errors": {"body": "can't be blank"}}


@pytest.mark.asyncio
async def test_add_comment_requires_auth(async_client: AsyncClient):
    alice = await _register(async_client, "alice")
    slug = await _create_article(async_client, alice)

    resp = await async_client.post(f"/api/articles/{slug}/comments", json={
        "comment": {"body": "anonymous"},
    })
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_add_comment_missing_article(async_client: AsyncClient):
    alice = await _register(async_client, "alice")
    resp = await async_client.post("/api/articles/ghost/comments", headers=_auth(alice), json={
        "comment": {"body": "hello?"},
    })
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# List
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_comments_newest_first(async_client: AsyncClient):
    alice = await _register(async_client, "alice")
    slug = await _create_article(async_client, alice)
    first = await _comment(async_client, alice, slug, "first")
    second = await _comment(async_client, alice, slug, "second")

    resp = await async_client.get(f"/api/articles/{slug}/comments")
    assert resp.status_code == 200
    ids = [c["id"] for c in resp.json()["comments"]]
    assert ids == [second["id"], first["id"]]


@pytest.mark.asyncio
async def test_listed_comment_timestamps_are_utc(async_client: AsyncClient):
    alice = await _register(async_client, "alice")
    slug = await _create_article(async_client, alice)
    await _comment(async_client, alice, slug, "stamped")

    comment = (await async_client.get(f"/api/articles/{slug}/comments")).json()["comments"][0]
    assert comment["createdAt"].endswith("Z")
    assert comment["updatedAt"].endswith("Z")


@pytest.mark.asyncio
async def test_list_comments_only_for_that_article(async_client: AsyncClient):
    alice = await _register(async_client, "alice")
    one = await _create_article(async_client, alice, "One")
    two = await _create_article(async_client, alice, "Two")
    await _comment(async_client, alice, one, "on one")

    resp = await async_client.get(f"/api/articles/{two}/comments")
    assert resp.json() == {"comments": []}


@pytest.mark.asyncio
async def test_list_comments_author_following_flag(async_client: AsyncClient):
    alice = await _register(async_client, "alice")
    bob = await _register(async_client, "bob")
    slug = await _create_article(async_client, alice)
    await _comment(async_client, alice, slug, "author reply")
    await async_client.post("/api/profiles/alice/follow", headers=_auth(bob))

    as_bob = (await async_client.get(f"/api/articles/{slug}/comments", headers=_auth(bob))).json()
    anonymous = (await async_client.get(f"/api/articles/{slug}/comments")).json()
    assert as_bob["comments"][0]["author"]["following"] is True
    assert anonymous["comments"][0]["author"]["following"] is False


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_comment(async_client: AsyncClient):
    alice = await _register(async_client, "alice")
    slug = await _create_article(async_client, alice)
    comment = await _comment(async_client, alice, slug, "temporary")

    resp = await async_client.delete(
        f"/api/articles/{slug}/comments/{comment['id']}", headers=_auth(alice)
    )
    assert resp.status_code == 204

    resp = await async_client.get(f"/api/articles/{slug}/comments")
    assert resp.json() == {"comments": []}


@pytest.mark.asyncio
async def test_delete_comment_by_other_user(async_client: AsyncClient):
    """Owning the article is not enough; only the comment's author may delete it."""
    alice = await _register(async_client, "alice")
    bob = await _register(async_client, "bob")
    slug = await _create_article(async_client, alice)
    comment = await _comment(async_client, bob, slug, "bob was here")

    resp = await async_client.delete(
        f"/api/articles/{slug}/comments/{comment['id']}", headers=_auth(alice)
    )
    assert resp.status_code == 403
    assert resp.json() == {"errors": {"comment": "is not yours"}}

    comments = (await async_client.get(f"/api/articles/{slug}/comments")).json()["comments"]
    assert len(comments) == 1


@pytest.mark.asyncio
async def test_delete_comment_not_found(async_client: AsyncClient):
    alice = await _register(async_client, "alice")
    slug = await _create_article(async_client, alice)

    resp = await async_client.delete(f"/api/articles/{slug}/comments/999", headers=_auth(alice))
    assert resp.status_code == 404
    assert resp.json() == {"errors": {"comment": "not found"}}


@pytest.mark.asyncio
async def test_delete_comment_through_other_article(async_client: AsyncClient):
    alice = await _register(async_client, "alice")
    one = await _create_article(async_client, alice, "One")
    two = await _create_article(async_client, alice, "Two")
    comment = await _comment(async_client, alice, one, "belongs to one")

    resp = await async_client.delete(
        f"/api/articles/{two}/comments/{comment['id']}", headers=_auth(alice)
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete_comment_requires_auth(async_client: AsyncClient):
    alice = await _register(async_client, "alice")
    slug = await _create_article(async_client, alice)
    comment = await _comment(async_client, alice, slug, "mine")

    resp = await async_client.delete(f"/api/articles/{slug}/comments/{comment['id']}")
    assert resp.status_code == 401
