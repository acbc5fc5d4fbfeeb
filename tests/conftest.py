"""
Username Cache - Test Fixtures
===============================

Shared fixtures for all tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from namecache.services.username_cache import UsernameCache
from namecache.twitch.api import LookupResult, failed_result


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeLookupService:
    """Lookup service returning a queued or default result and counting calls."""

    def __init__(self):
        self.calls: list[str] = []
        self.users: dict[str, tuple[str, str]] = {}
        self.next_results: list[LookupResult] = []
        self.default_result: LookupResult | None = None

    def lookup(self, login: str) -> LookupResult:
        self.calls.append(login)
        if self.next_results:
            return self.next_results.pop(0)
        if self.default_result is not None:
            return self.default_result
        if login in self.users:
            display_name, user_id = self.users[login]
            return {
                "_success": True,
                "_http": 200,
                "users": [{"display_name": display_name, "_id": user_id}],
            }
        return {"_success": True, "_http": 200, "users": []}

    def fail_with(self, exception: str) -> None:
        self.default_result = failed_result(exception, "boom")

    def recover(self) -> None:
        self.default_result = None


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def lookup_service():
    return FakeLookupService()


@pytest.fixture
def cache(lookup_service, clock):
    return UsernameCache(lookup_service, clock=clock)
