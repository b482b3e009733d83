"""
Comment endpoint tests: adding top-level comments and replies, the
same-post rule for parents, the one-level view used by post detail, and
the full thread view with depths.
"""
import pytest
from httpx import AsyncClient


async def _setup_post(client: AsyncClient, title: str = "Discussed") -> tuple[dict, dict]:
    user = (await client.post("/api/v1/users", json={
        "username": "commenter", "email": "commenter@example.com",
    })).json()["data"]
    post = (await client.post("/api/v1/posts", json={"title": title, "author_id": user["id"]})).json()["data"]
    return user, post


async def _comment(client: AsyncClient, post_id: int, author_id: int, content: str, parent_id: int | None = None) -> dict:
    payload = {"content": content, "author_id": author_id}
    if parent_id is not None:
        payload["parent_id"] = parent_id
    resp = await client.post(f"/api/v1/posts/{post_id}/comments", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


# ---------------------------------------------------------------------------
# Add comment
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_comment(async_client: AsyncClient):
    user, post = await _setup_post(async_client)
    resp = await async_client.post(f"/api/v1/posts/{post['id']}/comments", json={
        "content": "First!", "author_id": user["id"],
    })
    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Comment created successfully"
    comment = body["data"]
    assert comment["content"] == "First!"
    assert comment["post_id"] == post["id"]
    assert comment["parent_id"] is None
    assert comment["author"]["username"] == "commenter"


@pytest.mark.asyncio
async def test_add_reply(async_client: AsyncClient):
    user, post = await _setup_post(async_client)
    parent = await _comment(async_client, post["id"], user["id"], "Question?")
    reply = await _comment(async_client, post["id"], user["id"], "Answer.", parent_id=parent["id"])
    assert reply["parent_id"] == parent["id"]


@pytest.mark.asyncio
async def test_add_comment_unknown_post(async_client: AsyncClient):
    user, _ = await _setup_post(async_client)
    resp = await async_client.post("/api/v1/posts/99999/comments", json={
        "content": "Hello?", "author_id": user["id"],
    })
    assert resp.status_code == 404
    assert resp.json()["error"] == "Post not found"


@pytest.mark.asyncio
async def test_add_comment_unknown_author(async_client: AsyncClient):
    _, post = await _setup_post(async_client)
    resp = await async_client.post(f"/api/v1/posts/{post['id']}/comments", json={
        "content": "Ghost", "author_id": 99999,
    })
    assert resp.status_code == 400
    assert resp.json()["error"] == "User 99999 does not exist"


@pytest.mark.asyncio
async def test_add_reply_unknown_parent(async_client: AsyncClient):
    user, post = await _setup_post(async_client)
    resp = await async_client.post(f"/api/v1/posts/{post['id']}/comments", json={
        "content": "Reply", "author_id": user["id"], "parent_id": 99999,
    })
    assert resp.status_code == 400
    assert resp.json()["error"] == "Comment 99999 does not exist"


@pytest.mark.asyncio
async def test_add_reply_parent_on_another_post(async_client: AsyncClient):
    user, post = await _setup_post(async_client)
    other = (await async_client.post("/api/v1/posts", json={
        "title": "Elsewhere", "author_id": user["id"],
    })).json()["data"]
    foreign = await _comment(async_client, other["id"], user["id"], "Over here")

    resp = await async_client.post(f"/api/v1/posts/{post['id']}/comments", json={
        "content": "Cross-post reply", "author_id": user["id"], "parent_id": foreign["id"],
    })
    assert resp.status_code == 400
    assert resp.json()["error"] == (
        f"Comment {foreign['id']} belongs to post {other['id']}, not post {post['id']}"
    )

    listed = (await async_client.get(f"/api/v1/posts/{post['id']}/comments")).json()
    assert listed["count"] == 0


@pytest.mark.asyncio
async def test_add_comment_empty_content(async_client: AsyncClient):
    user, post = await _setup_post(async_client)
    resp = await async_client.post(f"/api/v1/posts/{post['id']}/comments", json={
        "content": "", "author_id": user["id"],
    })
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# One-level view
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_comments_top_level_with_direct_replies(async_client: AsyncClient):
    user, post = await _setup_post(async_client)
    first = await _comment(async_client, post["id"], user["id"], "First")
    second = await _comment(async_client, post["id"], user["id"], "Second")
    reply = await _comment(async_client, post["id"], user["id"], "Reply to first", parent_id=first["id"])
    await _comment(async_client, post["id"], user["id"], "Reply to reply", parent_id=reply["id"])

    body = (await async_client.get(f"/api/v1/posts/{post['id']}/comments")).json()
    assert body["count"] == 2
    top = body["data"]
    assert [c["id"] for c in top] == [first["id"], second["id"]]
    assert [r["id"] for r in top[0]["replies"]] == [reply["id"]]
    assert "replies" not in top[0]["replies"][0]
    assert top[1]["replies"] == []


@pytest.mark.asyncio
async def test_post_detail_embeds_comments(async_client: AsyncClient):
    user, post = await _setup_post(async_client)
    parent = await _comment(async_client, post["id"], user["id"], "Parent")
    await _comment(async_client, post["id"], user["id"], "Child", parent_id=parent["id"])

    detail = (await async_client.get(f"/api/v1/posts/{post['id']}")).json()["data"]
    assert len(detail["comments"]) == 1
    assert detail["comments"][0]["content"] == "Parent"
    assert detail["comments"][0]["replies"][0]["content"] == "Child"
    assert detail["comments"][0]["replies"][0]["author"]["username"] == "commenter"


@pytest.mark.asyncio
async def test_list_comments_unknown_post(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/posts/99999/comments")
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Full thread
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_comment_thread_depths(async_client: AsyncClient):
    user, post = await _setup_post(async_client)
    root = await _comment(async_client, post["id"], user["id"], "Level 0")
    parent_id = root["id"]
    for level in range(1, 4):
        parent_id = (await _comment(async_client, post["id"], user["id"], f"Level {level}", parent_id=parent_id))["id"]
    sibling = await _comment(async_client, post["id"], user["id"], "Another root")

    body = (await async_client.get(f"/api/v1/posts/{post['id']}/comments/thread")).json()
    assert body["count"] == 2
    roots = body["data"]
    assert [r["id"] for r in roots] == [root["id"], sibling["id"]]
    assert roots[1]["depth"] == 0
    assert roots[1]["replies"] == []

    node, depths = roots[0], []
    while True:
        depths.append((node["content"], node["depth"]))
        if not node["replies"]:
            break
        assert len(node["replies"]) == 1
        node = node["replies"][0]
    assert depths == [("Level 0", 0), ("Level 1", 1), ("Level 2", 2), ("Level 3", 3)]


@pytest.mark.asyncio
async def test_comment_thread_empty(async_client: AsyncClient):
    _, post = await _setup_post(async_client)
    body = (await async_client.get(f"/api/v1/posts/{post['id']}/comments/thread")).json()
    assert body == {"success": True, "data": [], "count": 0}


@pytest.mark.asyncio
async def test_comment_thread_unknown_post(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/posts/99999/comments/thread")
    assert resp.status_code == 404
