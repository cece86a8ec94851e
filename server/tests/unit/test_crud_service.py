"""Unit tests for the generic CRUD service."""

import pytest
from bson import ObjectId

from tournest.core.exceptions import ConflictError, NotFoundError, ValidationError
from tournest.models.tour import TOUR_RESOURCE
from tournest.models.user import USER_RESOURCE
from tournest.services.crud_service import CrudService
from tournest.services.query_builder import build_query_spec


@pytest.mark.asyncio
async def test_list_default_sort_and_hidden_fields(test_db, seeded_tours):
    """Test default newest-first ordering without internal fields."""
    service = CrudService(test_db, TOUR_RESOURCE)

    tours, count = await service.list(build_query_spec([], TOUR_RESOURCE))

    assert count == len(seeded_tours)
    assert [t["name"] for t in tours] == [
        "The Sports Lover",
        "The City Wanderer",
        "The Sea Explorer",
        "The Snow Adventurer",
        "The Park Camper",
    ]
    assert all("__v" not in t for t in tours)


@pytest.mark.asyncio
async def test_list_filter_sort_project(test_db, seeded_tours):
    """Test that filters, projection and sort reach the collection."""
    service = CrudService(test_db, TOUR_RESOURCE)
    spec = build_query_spec(
        [("price[lt]", "1500"), ("sort", "-price"), ("fields", "name,price")],
        TOUR_RESOURCE,
    )

    tours, count = await service.list(spec)

    assert count == 4
    assert [t["price"] for t in tours] == [1497.0, 1197.0, 997.0, 497.0]
    assert set(tours[0]) == {"_id", "name", "price"}


@pytest.mark.asyncio
async def test_list_pagination(test_db, seeded_tours):
    """Test that page and limit select a window."""
    service = CrudService(test_db, TOUR_RESOURCE)
    spec = build_query_spec([("sort", "price"), ("page", "2"), ("limit", "2")], TOUR_RESOURCE)

    tours, count = await service.list(spec)

    assert count == 2
    assert [t["name"] for t in tours] == ["The City Wanderer", "The Park Camper"]


@pytest.mark.asyncio
async def test_list_page_past_end_is_empty(test_db, seeded_tours):
    """Test that a page beyond the data returns nothing."""
    service = CrudService(test_db, TOUR_RESOURCE)
    tours, count = await service.list(build_query_spec([("page", "9")], TOUR_RESOURCE))
    assert (tours, count) == ([], 0)


@pytest.mark.asyncio
async def test_get_and_not_found(test_db, seeded_tours):
    """Test lookup by identifier."""
    service = CrudService(test_db, TOUR_RESOURCE)

    tour = await service.get(str(seeded_tours[0]["_id"]))
    assert tour["name"] == seeded_tours[0]["name"]

    with pytest.raises(NotFoundError) as exc_info:
        await service.get(str(ObjectId()))
    assert exc_info.value.message == "No tour found with this ID"


@pytest.mark.asyncio
async def test_malformed_id_is_validation_error(test_db):
    """Test that a non-ObjectId identifier gives 400."""
    service = CrudService(test_db, TOUR_RESOURCE)

    with pytest.raises(ValidationError) as exc_info:
        await service.delete("not-an-id")
    assert exc_info.value.status_code == 400
    assert "not-an-id" in exc_info.value.message


@pytest.mark.asyncio
async def test_create_returns_stored_form(test_db, make_tour):
    """Test insert returns the document with its id and without hidden fields."""
    service = CrudService(test_db, TOUR_RESOURCE)
    document = make_tour("The Wine Taster")
    del document["_id"]

    created = await service.create(document)

    assert isinstance(created["_id"], ObjectId)
    assert "__v" not in created
    assert "_id" not in document
    assert await test_db.tours.count_documents({"_id": created["_id"]}) == 1


@pytest.mark.asyncio
async def test_create_duplicate_conflict(test_db, seeded_tours, make_tour):
    """Test that a unique index violation becomes a conflict."""
    service = CrudService(test_db, TOUR_RESOURCE)

    with pytest.raises(ConflictError) as exc_info:
        await service.create(make_tour(seeded_tours[0]["name"]))
    assert exc_info.value.status_code == 409


@pytest.mark.asyncio
async def test_update(test_db, seeded_tours):
    """Test partial update returns the new state."""
    service = CrudService(test_db, TOUR_RESOURCE)
    tour_id = seeded_tours[0]["_id"]

    updated = await service.update(tour_id, {"price": 555.0})

    assert updated["price"] == 555.0
    assert updated["name"] == seeded_tours[0]["name"]
    assert "__v" not in updated


@pytest.mark.asyncio
async def test_update_empty_changes_returns_current(test_db, seeded_tours):
    """Test an empty change set is a read."""
    service = CrudService(test_db, TOUR_RESOURCE)
    tour = await service.update(seeded_tours[1]["_id"], {})
    assert tour["price"] == seeded_tours[1]["price"]


@pytest.mark.asyncio
async def test_update_missing(test_db):
    """Test updating an unknown document."""
    service = CrudService(test_db, TOUR_RESOURCE)
    with pytest.raises(NotFoundError):
        await service.update(ObjectId(), {"price": 1.0})


@pytest.mark.asyncio
async def test_delete(test_db, seeded_tours):
    """Test delete and repeated delete."""
    service = CrudService(test_db, TOUR_RESOURCE)
    tour_id = seeded_tours[2]["_id"]

    await service.delete(tour_id)
    assert await test_db.tours.count_documents({"_id": tour_id}) == 0

    with pytest.raises(NotFoundError):
        await service.delete(tour_id)


@pytest.mark.asyncio
async def test_same_service_serves_users(test_db):
    """Test the service is reusable for another resource and hides credentials."""
    await test_db.users.insert_many([
        {"_id": ObjectId(), "name": "Ada", "email": "ada@example.com", "role": "admin", "password": "x"},
        {"_id": ObjectId(), "name": "Lin", "email": "lin@example.com", "role": "user", "password": "y"},
    ])
    service = CrudService(test_db, USER_RESOURCE)

    users, count = await service.list(build_query_spec([("role", "user")], USER_RESOURCE))

    assert count == 1
    assert users[0]["name"] == "Lin"
    assert "password" not in users[0]
