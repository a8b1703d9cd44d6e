from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient

from social.models.models import Comment, Photo
from social.services import post_service
from tests.conftest import auth_headers_for, make_post


@pytest.mark.asyncio
async def test_feed_returns_posts_in_service_order(client: AsyncClient, monkeypatch, alice, bob):
    now = datetime.now(UTC)
    newer = make_post(bob, "newer", created_at=now)
    older = make_post(bob, "older", created_at=now - timedelta(hours=1))

    async def fake_get_news_feed(user_id):
        assert user_id == alice.id
        return [newer, older]

    monkeypatch.setattr("social.api.posts.get_news_feed", fake_get_news_feed)

    response = await client.get(f"/api/posts/feed/{alice.id}", headers=auth_headers_for(alice))

    assert response.status_code == 200
    data = response.json()
    assert [post["text"] for post in data] == ["newer", "older"]
    assert data[0]["posted_by"] == {"id": str(bob.id), "name": "Bob"}
    assert data[0]["likes"] == []
    assert data[0]["comments"] == []


@pytest.mark.asyncio
async def test_feed_requires_token(client: AsyncClient, alice):
    response = await client.get(f"/api/posts/feed/{alice.id}")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_posts_by_user(client: AsyncClient, monkeypatch, alice):
    post = make_post(alice, "mine")
    post.comments = [
        Comment(id=uuid4(), post_id=post.id, user_id=alice.id, user_name=None, text="hi", created_at=post.created_at)
    ]

    async def fake_list_posts_by_user(user_id):
        return [post]

    monkeypatch.setattr("social.api.posts.list_posts_by_user", fake_list_posts_by_user)

    response = await client.get(f"/api/posts/by/{alice.id}", headers=auth_headers_for(alice))

    assert response.status_code == 200
    comment = response.json()[0]["comments"][0]
    assert comment["text"] == "hi"
    assert comment["posted_by"] == {"id": str(alice.id), "name": None}


@pytest.mark.asyncio
async def test_create_post(client: AsyncClient, monkeypatch, alice):
    calls = {}

    async def fake_create_post(user_id, text, photo=None):
        calls.update(user_id=user_id, text=text, photo=photo)
        return make_post(alice, text, has_photo=photo is not None)

    monkeypatch.setattr("social.api.posts.create_post", fake_create_post)

    response = await client.post(
        f"/api/posts/new/{alice.id}",
        data={"text": "first post"},
        files={"photo": ("cat.jpg", b"jpegbytes", "image/jpeg")},
        headers=auth_headers_for(alice),
    )

    assert response.status_code == 200
    assert response.json()["text"] == "first post"
    assert response.json()["has_photo"] is True
    assert calls["user_id"] == alice.id
    assert calls["photo"] == Photo(data=b"jpegbytes", content_type="image/jpeg")


@pytest.mark.asyncio
async def test_create_post_without_text(client: AsyncClient, alice):
    response = await client.post(
        f"/api/posts/new/{alice.id}",
        data={"text": "   "},
        headers=auth_headers_for(alice),
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Text is required"}


@pytest.mark.asyncio
async def test_create_post_for_someone_else(client: AsyncClient, alice, bob):
    response = await client.post(
        f"/api/posts/new/{bob.id}",
        data={"text": "impersonation"},
        headers=auth_headers_for(alice),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_like_and_unlike_use_authenticated_user(client: AsyncClient, monkeypatch, alice):
    post_id = uuid4()
    likes = []

    async def fake_like_post(user_id, post_id):
        if user_id not in likes:
            likes.append(user_id)
        return list(likes)

    async def fake_unlike_post(user_id, post_id):
        if user_id in likes:
            likes.remove(user_id)
        return list(likes)

    monkeypatch.setattr("social.api.posts.like_post", fake_like_post)
    monkeypatch.setattr("social.api.posts.unlike_post", fake_unlike_post)
    headers = auth_headers_for(alice)

    response = await client.put("/api/posts/like", json={"post_id": str(post_id)}, headers=headers)
    assert response.status_code == 200
    assert response.json() == {"id": str(post_id), "likes": [str(alice.id)]}

    response = await client.put("/api/posts/unlike", json={"post_id": str(post_id)}, headers=headers)
    assert response.json() == {"id": str(post_id), "likes": []}


@pytest.mark.asyncio
async def test_comment_requires_text(client: AsyncClient, alice):
    response = await client.put(
        "/api/posts/comment",
        json={"post_id": str(uuid4()), "comment": {"text": ""}},
        headers=auth_headers_for(alice),
    )

    assert response.status_code == 400
    assert "Text is required" in response.json()["error"]


@pytest.mark.asyncio
async def test_comment(client: AsyncClient, monkeypatch, alice):
    post_id = uuid4()

    async def fake_create_comment(user_id, post_id, text):
        return [
            Comment(
                id=uuid4(),
                post_id=post_id,
                user_id=user_id,
                user_name="Alice",
                text=text,
                created_at=datetime.now(UTC),
            )
        ]

    monkeypatch.setattr("social.api.posts.create_comment", fake_create_comment)

    response = await client.put(
        "/api/posts/comment",
        json={"post_id": str(post_id), "comment": {"text": "nice"}},
        headers=auth_headers_for(alice),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == str(post_id)
    assert data["comments"][0]["text"] == "nice"
    assert data["comments"][0]["posted_by"] == {"id": str(alice.id), "name": "Alice"}
    assert "id" in data["comments"][0]


@pytest.mark.asyncio
async def test_uncomment_needs_comment_id(client: AsyncClient, alice):
    response = await client.put(
        "/api/posts/uncomment",
        json={"post_id": str(uuid4()), "comment": {"text": "nice"}},
        headers=auth_headers_for(alice),
    )

    assert response.status_code == 400
    assert response.json()["error"].startswith("comment_id:")


@pytest.mark.asyncio
async def test_delete_post_of_someone_else(client: AsyncClient, monkeypatch, alice, bob):
    post = make_post(bob)

    async def fake_get_post(post_id):
        return post

    monkeypatch.setattr(post_service, "get_post", fake_get_post)

    response = await client.delete(f"/api/posts/{post.id}", headers=auth_headers_for(alice))

    assert response.status_code == 403
    assert response.json() == {"error": "User is not authorized"}


@pytest.mark.asyncio
async def test_delete_missing_post(client: AsyncClient, monkeypatch, alice):
    async def fake_get_post(post_id):
        return None

    monkeypatch.setattr(post_service, "get_post", fake_get_post)

    response = await client.delete(f"/api/posts/{uuid4()}", headers=auth_headers_for(alice))

    assert response.status_code == 404
    assert response.json() == {"error": "Post not found"}


@pytest.mark.asyncio
async def test_post_photo(client: AsyncClient, monkeypatch):
    async def fake_get_post_photo(post_id):
        return Photo(data=b"jpegbytes", content_type="image/jpeg")

    monkeypatch.setattr("social.api.posts.get_post_photo", fake_get_post_photo)

    response = await client.get(f"/api/posts/photo/{uuid4()}")

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"
    assert response.content == b"jpegbytes"


@pytest.mark.asyncio
async def test_post_actions_accept_camel_case_ids(client: AsyncClient, monkeypatch, alice):
    post_id = uuid4()
    comment_id = uuid4()
    calls = []

    async def fake_like_post(user_id, post_id):
        calls.append(("like", post_id))
        return [user_id]

    async def fake_unlike_post(user_id, post_id):
        calls.append(("unlike", post_id))
        return []

    async def fake_create_comment(user_id, post_id, text):
        calls.append(("comment", post_id))
        return []

    async def fake_delete_comment(user_id, post_id, comment_id):
        calls.append(("uncomment", post_id, comment_id))
        return []

    monkeypatch.setattr("social.api.posts.like_post", fake_like_post)
    monkeypatch.setattr("social.api.posts.unlike_post", fake_unlike_post)
    monkeypatch.setattr("social.api.posts.create_comment", fake_create_comment)
    monkeypatch.setattr("social.api.posts.delete_comment", fake_delete_comment)
    headers = auth_headers_for(alice)

    for path, body in [
        ("like", {"postId": str(post_id)}),
        ("unlike", {"postId": str(post_id)}),
        ("comment", {"postId": str(post_id), "comment": {"text": "nice"}}),
        ("uncomment", {"postId": str(post_id), "commentId": str(comment_id)}),
    ]:
        response = await client.put(f"/api/posts/{path}", json=body, headers=headers)
        assert response.status_code == 200, path

    assert calls == [
        ("like", post_id),
        ("unlike", post_id),
        ("comment", post_id),
        ("uncomment", post_id, comment_id),
    ]
