from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from krishisakha.models import Crop, Location, QueryContext


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 11, 15, 6, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def punjab() -> Location:
    return Location(state="punjab", district="ludhiana")


@pytest.fixture
def wheat_context(punjab: Location) -> QueryContext:
    return QueryContext(
        language="eng",
        location=punjab,
        crop=Crop(name="wheat", season="rabi"),
        query_type=frozenset({"market", "price"}),
    )


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
