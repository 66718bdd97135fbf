"""Tests for the /api/posts endpoints.

Covers listing visibility, detail by slug, and the create/update/delete
guards (authentication, ownership, validation).
"""

from conftest import bearer


async def test_create_post(client, seeded):
    response = await client.post(
        "/api/posts",
        json={"title": "Hello World", "content": "# Hi\n\nMy first note."},
        headers=bearer("alice-token"),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["slug"] == "hello-world"
    assert data["isPublished"] is False
    assert data["publishedAt"] is None
    assert data["authorId"] == seeded.alice.id
    assert data["author"]["fullName"] == "Alice Author"
    assert data["excerpt"] == "Hi"
    assert data["readingTime"] == 1
    assert data["viewCount"] == 0
    assert data["tags"] == []
    assert data["category"] is None


async def test_create_post_with_category_and_tags(client, seeded):
    response = await client.post(
        "/api/posts",
        json={
            "title": "Binary Search",
            "content": "Halve the range each step.",
            "categoryId": seeded.programming,
            "tagIds": [seeded.algorithms, seeded.python],
            "isPublished": True,
            "seoTitle": "Binary search explained",
        },
        headers=bearer("alice-token"),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["category"]["slug"] == "programming"
    assert [t["slug"] for t in data["tags"]] == ["algorithms", "python"]
    assert data["publishedAt"] is not None
    assert data["seoTitle"] == "Binary search explained"


async def test_create_post_requires_session(client, seeded):
    response = await client.post(
        "/api/posts", json={"title": "Nope", "content": "body"}
    )
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized - no valid session"}


async def test_create_post_rejects_unknown_token(client, seeded, auth_provider):
    response = await client.post(
        "/api/posts",
        json={"title": "Nope", "content": "body"},
        headers=bearer("forged-token"),
    )
    assert response.status_code == 401
    assert auth_provider.calls == ["forged-token"]


async def test_create_post_accepts_session_cookie(client, seeded):
    response = await client.post(
        "/api/posts",
        json={"title": "Cookie Post", "content": "body"},
        headers={"Cookie": "sb-access-token=bob-token"},
    )

    assert response.status_code == 201
    assert response.json()["authorId"] == seeded.bob.id


async def test_create_post_missing_title(client, seeded):
    response = await client.post(
        "/api/posts", json={"content": "body"}, headers=bearer("alice-token")
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Title is required"}


async def test_create_post_duplicate_slug(client, seeded, make_post):
    await make_post("Hello World")
    response = await client.post(
        "/api/posts",
        json={"title": "Hello, World", "content": "again"},
        headers=bearer("bob-token"),
    )
    assert response.status_code == 409
    assert "hello-world" in response.json()["error"]


async def test_create_post_creates_missing_profile(client, seeded, auth_provider):
    from studyhub.services.auth import Identity

    auth_provider.tokens["carol-token"] = Identity(
        id="0a1b2c3d-0000-4000-8000-0000000ca201", email="carol@example.com"
    )
    response = await client.post(
        "/api/posts",
        json={"title": "First Steps", "content": "body"},
        headers=bearer("carol-token"),
    )
    assert response.status_code == 201
    assert response.json()["author"]["email"] == "carol@example.com"


async def test_list_posts_anonymous_sees_published_only(client, make_post):
    await make_post("Published Post", is_published=True)
    await make_post("Draft Post")

    response = await client.get("/api/posts")

    assert response.status_code == 200
    data = response.json()
    assert [p["slug"] for p in data["posts"]] == ["published-post"]
    assert data["pagination"] == {
        "page": 1,
        "limit": 10,
        "totalCount": 1,
        "totalPages": 1,
        "hasNext": False,
        "hasPrev": False,
    }


async def test_list_posts_author_sees_own_drafts(client, seeded, make_post):
    await make_post("Published Post", is_published=True)
    await make_post("Draft Post")

    response = await client.get(
        "/api/posts",
        params={"author": seeded.alice.id},
        headers=bearer("alice-token"),
    )

    slugs = {p["slug"] for p in response.json()["posts"]}
    assert slugs == {"published-post", "draft-post"}


async def test_list_posts_author_can_filter_drafts(client, seeded, make_post):
    await make_post("Published Post", is_published=True)
    await make_post("Draft Post")

    response = await client.get(
        "/api/posts",
        params={"author": seeded.alice.id, "published": "false"},
        headers=bearer("alice-token"),
    )

    assert [p["slug"] for p in response.json()["posts"]] == ["draft-post"]


async def test_list_posts_other_users_never_see_drafts(client, seeded, make_post):
    await make_post("Published Post", is_published=True)
    await make_post("Draft Post")

    as_bob = await client.get(
        "/api/posts",
        params={"author": seeded.alice.id, "published": "false"},
        headers=bearer("bob-token"),
    )
    anonymous = await client.get("/api/posts", params={"published": "false"})

    assert [p["slug"] for p in as_bob.json()["posts"]] == ["published-post"]
    assert [p["slug"] for p in anonymous.json()["posts"]] == ["published-post"]


async def test_list_posts_slug_lookup_shows_own_draft(client, make_post):
    await make_post("Work In Progress")

    own = await client.get(
        "/api/posts",
        params={"slug": "work-in-progress"},
        headers=bearer("alice-token"),
    )
    other = await client.get(
        "/api/posts",
        params={"slug": "work-in-progress"},
        headers=bearer("bob-token"),
    )

    assert [p["slug"] for p in own.json()["posts"]] == ["work-in-progress"]
    assert other.json()["posts"] == []


async def test_list_posts_anonymous_does_not_call_provider(
    client, make_post, auth_provider
):
    await make_post("Published Post", is_published=True)
    await client.get("/api/posts")
    assert auth_provider.calls == []


async def test_list_posts_filters(client, seeded, make_post):
    await make_post(
        "Python Basics",
        is_published=True,
        category_id=seeded.programming,
        tag_ids=[seeded.python],
    )
    await make_post("Integrals", is_published=True, category_id=seeded.maths)

    by_category = await client.get("/api/posts", params={"category": "mathematics"})
    by_tag = await client.get("/api/posts", params={"tag": "python"})
    by_search = await client.get("/api/posts", params={"search": "INTEGRAL"})

    assert [p["slug"] for p in by_category.json()["posts"]] == ["integrals"]
    assert [p["slug"] for p in by_tag.json()["posts"]] == ["python-basics"]
    assert [p["slug"] for p in by_search.json()["posts"]] == ["integrals"]


async def test_list_posts_rejects_bad_paging(client, seeded):
    too_big = await client.get("/api/posts", params={"limit": 500})
    zero_page = await client.get("/api/posts", params={"page": 0})
    not_a_number = await client.get("/api/posts", params={"page": "two"})

    for response in (too_big, zero_page, not_a_number):
        assert response.status_code == 400
        assert "error" in response.json()


async def test_get_post_by_slug_counts_views(client, make_post):
    await make_post("Readable", is_published=True)

    first = await client.get("/api/posts/by-slug/readable")
    second = await client.get("/api/posts/by-slug/readable")

    assert first.status_code == 200
    assert first.json()["content"].startswith("# Readable")
    assert first.json()["viewCount"] == 1
    assert second.json()["viewCount"] == 2


async def test_get_post_by_slug_draft_visible_to_author_only(client, make_post):
    await make_post("Private Notes")

    anonymous = await client.get("/api/posts/by-slug/private-notes")
    other = await client.get(
        "/api/posts/by-slug/private-notes", headers=bearer("bob-token")
    )
    author = await client.get(
        "/api/posts/by-slug/private-notes", headers=bearer("alice-token")
    )

    assert anonymous.status_code == 404
    assert anonymous.json() == {"error": "Post not found"}
    assert other.status_code == 404
    assert author.status_code == 200
    assert author.json()["isPublished"] is False


async def test_update_post(client, seeded, make_post):
    post = await make_post("Original Title")

    response = await client.patch(
        f"/api/posts/{post.id}",
        json={"title": "Better Title", "tagIds": [seeded.beginner]},
        headers=bearer("alice-token"),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Better Title"
    assert data["slug"] == "better-title"
    assert [t["slug"] for t in data["tags"]] == ["beginner"]


async def test_update_post_forbidden_for_non_author(client, make_post):
    post = await make_post("Alice Only", is_published=True)

    response = await client.patch(
        f"/api/posts/{post.id}",
        json={"title": "Taken Over", "content": "vandalised"},
        headers=bearer("bob-token"),
    )

    assert response.status_code == 403
    assert "error" in response.json()

    check = await client.get("/api/posts", params={"slug": "alice-only"})
    [unchanged] = check.json()["posts"]
    assert unchanged["title"] == "Alice Only"
    assert unchanged["slug"] == "alice-only"


async def test_update_post_requires_session(client, make_post):
    post = await make_post("Guarded")
    response = await client.patch(f"/api/posts/{post.id}", json={"title": "x"})
    assert response.status_code == 401


async def test_update_post_not_found(client, seeded):
    response = await client.patch(
        "/api/posts/missing-id", json={"title": "x"}, headers=bearer("alice-token")
    )
    assert response.status_code == 404
    assert response.json() == {"error": "Post not found"}


async def test_update_post_validation(client, make_post):
    post = await make_post("Valid")
    response = await client.patch(
        f"/api/posts/{post.id}",
        json={"title": "   "},
        headers=bearer("alice-token"),
    )
    assert response.status_code == 400


async def test_publish_stamps_published_at_once(client, make_post):
    post = await make_post("Publish Me")
    url = f"/api/posts/{post.id}"
    headers = bearer("alice-token")

    published = await client.patch(url, json={"isPublished": True}, headers=headers)
    first_published_at = published.json()["publishedAt"]
    assert published.json()["isPublished"] is True
    assert first_published_at is not None

    unpublished = await client.patch(url, json={"isPublished": False}, headers=headers)
    assert unpublished.json()["isPublished"] is False
    assert unpublished.json()["publishedAt"] == first_published_at

    republished = await client.patch(url, json={"isPublished": True}, headers=headers)
    assert republished.json()["publishedAt"] == first_published_at


async def test_delete_post(client, make_post):
    post = await make_post("Short Lived", is_published=True)

    response = await client.delete(
        f"/api/posts/{post.id}", headers=bearer("alice-token")
    )

    assert response.status_code == 200
    assert response.json() == {"success": True}
    gone = await client.get("/api/posts/by-slug/short-lived")
    assert gone.status_code == 404


async def test_delete_post_not_found(client, seeded):
    response = await client.delete(
        "/api/posts/does-not-exist", headers=bearer("alice-token")
    )
    assert response.status_code == 404
    assert response.json() == {"error": "Post not found"}


async def test_delete_post_forbidden_for_non_author(client, make_post):
    post = await make_post("Keep Me", is_published=True)

    response = await client.delete(
        f"/api/posts/{post.id}", headers=bearer("bob-token")
    )

    assert response.status_code == 403
    still_there = await client.get("/api/posts/by-slug/keep-me")
    assert still_there.status_code == 200


async def test_delete_post_requires_session(client, make_post):
    post = await make_post("Anonymous Delete")
    response = await client.delete(f"/api/posts/{post.id}")
    assert response.status_code == 401


async def test_create_post_checks_session_before_body(client, seeded):
    response = await client.post(
        "/api/posts", json={"title": ["not", "a", "string"], "content": "c"}
    )
    assert response.status_code == 401


async def test_create_post_rejects_wrong_types(client, seeded):
    response = await client.post(
        "/api/posts",
        json={"title": ["not", "a", "string"], "content": "c"},
        headers=bearer("alice-token"),
    )
    assert response.status_code == 400
    assert response.json()["error"].startswith("title:")


async def test_update_post_checks_ownership_before_body(client, make_post):
    post = await make_post("Alice Guarded", is_published=True)
    url = f"/api/posts/{post.id}"
    body = {"isPublished": "maybe"}

    anonymous = await client.patch(url, json=body)
    as_bob = await client.patch(url, json=body, headers=bearer("bob-token"))
    missing = await client.patch(
        "/api/posts/no-such-post", json=body, headers=bearer("alice-token")
    )
    as_alice = await client.patch(url, json=body, headers=bearer("alice-token"))

    assert anonymous.status_code == 401
    assert as_bob.status_code == 403
    assert missing.status_code == 404
    assert as_alice.status_code == 400
    assert as_alice.json()["error"].startswith("isPublished:")


async def test_listing_survives_auth_provider_outage(
    client, make_post, auth_provider, mocker
):
    from studyhub.errors import StorageError

    await make_post("Public Post", is_published=True)
    await make_post("Private Draft")
    auth_provider.get_user = mocker.AsyncMock(
        side_effect=StorageError("Auth provider unavailable")
    )

    listing = await client.get(
        "/api/posts",
        params={"published": "false"},
        headers=bearer("alice-token"),
    )
    detail = await client.get(
        "/api/posts/by-slug/public-post", headers=bearer("alice-token")
    )
    create = await client.post(
        "/api/posts",
        json={"title": "During Outage", "content": "body"},
        headers=bearer("alice-token"),
    )

    assert listing.status_code == 200
    assert [p["slug"] for p in listing.json()["posts"]] == ["public-post"]
    assert detail.status_code == 200
    assert create.status_code == 500
