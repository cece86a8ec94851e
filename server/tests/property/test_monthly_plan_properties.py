"""Property-based tests for the monthly plan aggregation."""

import asyncio
from collections import Counter
from datetime import datetime

from bson import ObjectId
from hypothesis import given, settings
from hypothesis import strategies as st
from mongomock_motor import AsyncMongoMockClient

from tournest.services.tour_service import TourService

start_dates = st.datetimes(min_value=datetime(2019, 1, 1), max_value=datetime(2027, 12, 31, 23, 59, 59))
catalogues = st.lists(st.lists(start_dates, max_size=8), max_size=12)
years = st.integers(min_value=2019, max_value=2027)


async def monthly_plan(tours: list[list[datetime]], year: int) -> list[dict]:
    db = AsyncMongoMockClient()["plan_properties"]
    if tours:
        await db.tours.insert_many([
            {"_id": ObjectId(), "name": f"Property tour {i:03d}", "startDates": dates}
            for i, dates in enumerate(tours)
        ])
    return await TourService(db).get_monthly_plan(year)


@settings(max_examples=60, deadline=None)
@given(tours=catalogues, year=years)
def test_monthly_plan_counts_every_start_in_year(tours, year):
    """Test the plan accounts for exactly the start dates inside the year."""
    plan = asyncio.run(monthly_plan(tours, year))

    expected = Counter(d.month for dates in tours for d in dates if d.year == year)
    assert {row["month"]: row["numTours"] for row in plan} == dict(expected)
    assert sum(row["numTours"] for row in plan) == sum(expected.values())


@settings(max_examples=60, deadline=None)
@given(tours=catalogues, year=years)
def test_monthly_plan_shape_and_order(tours, year):
    """Test month range, uniqueness and (-numTours, month) ordering."""
    plan = asyncio.run(monthly_plan(tours, year))

    months = [row["month"] for row in plan]
    assert all(1 <= month <= 12 for month in months)
    assert len(months) == len(set(months))
    assert plan == sorted(plan, key=lambda row: (-row["numTours"], row["month"]))
    assert all(len(row["tours"]) == row["numTours"] for row in plan)
    assert all("_id" not in row for row in plan)


@settings(max_examples=30, deadline=None)
@given(year=years)
def test_year_boundaries_are_exclusive(year):
    """Test the first instant of next year is never counted."""
    tours = [[datetime(year, 1, 1), datetime(year, 12, 31, 23, 59, 59), datetime(year + 1, 1, 1)]]

    plan = asyncio.run(monthly_plan(tours, year))

    assert {row["month"]: row["numTours"] for row in plan} == {1: 1, 12: 1}
