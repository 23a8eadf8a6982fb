import pytest

from factories import NOW, indexed_container, make_view
from estate_search.models.documents import PropertyType


@pytest.fixture
def berlin_apartments():
    return [
        make_view("berlin-1", price=450000.0, updated_at=NOW.replace(day=1)),
        make_view("berlin-2", price=500000.0, updated_at=NOW.replace(day=2)),
        make_view("berlin-3", price=400000.0, updated_at=NOW.replace(day=3)),
    ]


@pytest.fixture
def mixed_listings(berlin_apartments):
    return berlin_apartments + [
        make_view("munich-house", price=900000.0, city="Munich", property_type=PropertyType.HOUSE,
                  features={"garden": True, "garage": True}, amenities=["pool"]),
        make_view("paris-flat", price=350000.0, city="Paris", country="FR", amenities=["gym", "pool"]),
    ]


@pytest.fixture
def container(mixed_listings):
    return indexed_container(mixed_listings)
