"""Unit tests for tour service."""

from uuid import uuid4

import pytest

from app.core.exceptions import BookingConflictError, NotFoundError, ValidationError
from app.schemas.tour import TourToggleRequest, TourWriteRequest
from app.services.tour_service import TourService, default_short_description


@pytest.mark.asyncio
async def test_create_tour(test_session, sample_tour_data):
    """Test creating a tour derives slug, teaser and defaults."""
    service = TourService(test_session)

    tour = await service.create_tour(TourWriteRequest(**sample_tour_data))

    assert tour.id is not None
    assert tour.name == sample_tour_data["name"]
    assert tour.slug == "passeio-pelo-vale-do-douro"
    assert tour.short_description == sample_tour_data["description"][:150]
    assert tour.category == "Wine"
    assert tour.is_active is True
    assert tour.is_featured is False
    assert tour.promotion_price is None


@pytest.mark.asyncio
async def test_create_tour_defaults_category(test_session):
    """Test a missing category falls back to the default."""
    service = TourService(test_session)

    tour = await service.create_tour(
        TourWriteRequest(name="City Walk", description="Old town walk", price=20, duration=2)
    )

    assert tour.category == "Tour"


@pytest.mark.asyncio
async def test_create_tour_duplicate_name(test_session, sample_tour_data):
    """Test creating a tour whose name maps to an existing slug fails."""
    service = TourService(test_session)
    await service.create_tour(TourWriteRequest(**sample_tour_data))

    with pytest.raises(ValidationError) as exc_info:
        await service.create_tour(
            TourWriteRequest(**{**sample_tour_data, "name": "PASSEIO pelo Vale do Douro!"})
        )

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail["error"] == "A tour with this name already exists"


@pytest.mark.asyncio
async def test_create_tour_drops_promotion_price_without_promotion(test_session, sample_tour_data):
    """Test promotion price is discarded when the tour is not on promotion."""
    service = TourService(test_session)

    tour = await service.create_tour(
        TourWriteRequest(**sample_tour_data, promotion_price=90)
    )

    assert tour.is_promotion is False
    assert tour.promotion_price is None


@pytest.mark.asyncio
async def test_update_tour_keeps_slug_when_name_unchanged(test_session, make_tour):
    """Test the slug only changes along with the name."""
    service = TourService(test_session)
    tour = await make_tour("Sunset Cruise", slug="custom-sunset")

    updated = await service.update_tour(
        tour.id,
        TourWriteRequest(name="Sunset Cruise", description="New text", price=55, duration=3)
    )

    assert updated.slug == "custom-sunset"
    assert updated.description == "New text"
    assert updated.price == 55


@pytest.mark.asyncio
async def test_update_tour_renames_slug(test_session, make_tour):
    """Test renaming a tour regenerates its slug."""
    service = TourService(test_session)
    tour = await make_tour("Sunset Cruise")

    updated = await service.update_tour(
        tour.id,
        TourWriteRequest(name="Sunrise Cruise", description="Early start", price=55, duration=3)
    )

    assert updated.slug == "sunrise-cruise"


@pytest.mark.asyncio
async def test_update_tour_slug_collision_gets_suffix(test_session, make_tour):
    """Test renaming onto a taken slug appends a timestamp suffix."""
    service = TourService(test_session)
    await make_tour("Harbour Tour")
    tour = await make_tour("River Tour")

    updated = await service.update_tour(
        tour.id,
        TourWriteRequest(name="Harbour Tour", description="Boats", price=30, duration=1)
    )

    assert updated.slug.startswith("harbour-tour-")
    assert updated.slug.rsplit("-", 1)[1].isdigit()


@pytest.mark.asyncio
async def test_update_tour_not_found(test_session):
    """Test updating a missing tour raises NotFoundError."""
    service = TourService(test_session)

    with pytest.raises(NotFoundError):
        await service.update_tour(
            uuid4(),
            TourWriteRequest(name="Ghost", description="Nothing", price=1, duration=1)
        )


@pytest.mark.asyncio
async def test_toggle_tour_only_touches_flags(test_session, make_tour):
    """Test toggling a flag leaves the other fields alone."""
    service = TourService(test_session)
    tour = await make_tour("Lisbon Food Tour", price=80.0)

    toggled = await service.toggle_tour(tour.id, TourToggleRequest(is_featured=True))

    assert toggled.is_featured is True
    assert toggled.is_active is True
    assert toggled.price == 80.0
    assert toggled.name == "Lisbon Food Tour"


@pytest.mark.asyncio
async def test_toggle_promotion_off_clears_price(test_session, make_tour):
    """Test ending a promotion clears the promotional price."""
    service = TourService(test_session)
    tour = await make_tour("Porto Wine Cellars", is_promotion=True, promotion_price=50.0)

    toggled = await service.toggle_tour(tour.id, TourToggleRequest(is_promotion=False))

    assert toggled.is_promotion is False
    assert toggled.promotion_price is None


@pytest.mark.asyncio
async def test_delete_tour(test_session, make_tour):
    """Test deleting a tour without bookings."""
    service = TourService(test_session)
    tour = await make_tour("Sintra Day Trip")

    deleted = await service.delete_tour(tour.id)

    assert deleted.name == "Sintra Day Trip"
    assert await service.get_tour_by_id(tour.id) is None


@pytest.mark.asyncio
async def test_delete_tour_with_booking_refused(test_session, make_tour, make_booking):
    """Test a tour with bookings cannot be deleted."""
    service = TourService(test_session)
    tour = await make_tour("Evora Heritage")
    await make_booking(tour)

    with pytest.raises(BookingConflictError) as exc_info:
        await service.delete_tour(tour.id)

    assert exc_info.value.detail["error"] == "Cannot delete a tour that has bookings"
    assert await service.get_tour_by_id(tour.id) is not None


@pytest.mark.asyncio
async def test_delete_tour_not_found(test_session):
    """Test deleting a missing tour raises NotFoundError."""
    service = TourService(test_session)

    with pytest.raises(NotFoundError):
        await service.delete_tour(uuid4())


@pytest.mark.asyncio
async def test_list_tours_active_only(test_session, make_tour):
    """Test the public listing hides inactive tours."""
    service = TourService(test_session)
    await make_tour("Visible Tour")
    await make_tour("Hidden Tour", is_active=False)

    all_tours = await service.list_tours()
    public_tours = await service.list_tours(active_only=True)

    assert {tour.name for tour in all_tours} == {"Visible Tour", "Hidden Tour"}
    assert [tour.name for tour in public_tours] == ["Visible Tour"]


@pytest.mark.asyncio
async def test_get_public_tour_by_slug_hides_inactive(test_session, make_tour):
    """Test inactive tours are not reachable by slug."""
    service = TourService(test_session)
    await make_tour("Closed Tour", is_active=False)

    with pytest.raises(NotFoundError):
        await service.get_public_tour_by_slug("closed-tour")


@pytest.mark.asyncio
async def test_get_tour_by_id_not_found(test_session):
    """Test getting a non-existent tour returns None."""
    service = TourService(test_session)

    assert await service.get_tour_by_id(uuid4()) is None


def test_default_short_description():
    """Test teaser fallback to the head of the description."""
    description = "x" * 200

    assert default_short_description(description) == "x" * 150
    assert default_short_description(description, "   ") == "x" * 150
    assert default_short_description(description, " Short ") == "Short"
