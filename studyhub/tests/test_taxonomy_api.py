"""Tests for the categories and tags endpoints and reference-data seeding."""

from sqlalchemy.exc import OperationalError

from studyhub.services.taxonomy import seed_reference_data


async def test_list_categories(client, seeded):
    response = await client.get("/api/categories")

    assert response.status_code == 200
    data = response.json()
    assert [c["slug"] for c in data] == ["mathematics", "programming"]
    programming = data[1]
    assert programming["color"] == "#3b82f6"
    assert set(programming) >= {"id", "name", "slug", "createdAt", "updatedAt"}


async def test_list_tags(client, seeded):
    response = await client.get("/api/tags")

    assert response.status_code == 200
    assert [t["name"] for t in response.json()] == ["Algorithms", "Beginner", "Python"]


async def test_empty_lists(client, engine):
    categories = await client.get("/api/categories")
    tags = await client.get("/api/tags")

    assert categories.json() == []
    assert tags.json() == []


async def test_list_categories_store_failure(client, mocker):
    mocker.patch(
        "sqlalchemy.ext.asyncio.AsyncSession.execute",
        side_effect=OperationalError("SELECT", {}, Exception("database is gone")),
    )

    response = await client.get("/api/categories")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch categories"}


async def test_seed_reference_data_is_idempotent(session):
    categories = [{"name": "Study Tips", "color": "#ef4444"}, {"name": "Languages"}]
    tags = [{"name": "Exam Prep"}, {"name": "Python", "slug": "py"}]

    first = await seed_reference_data(session, categories, tags)
    second = await seed_reference_data(session, categories, tags)

    assert first == (2, 2)
    assert second == (0, 0)
