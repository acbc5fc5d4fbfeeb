"""
Tests for namecache/twitch/api.py

Runs TwitchUsersAPI against httpx.MockTransport handlers.
"""

import httpx
import pytest

from namecache.services.username_cache import UsernameCache
from namecache.twitch.api import TwitchUsersAPI


def make_api(handler) -> TwitchUsersAPI:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return TwitchUsersAPI(
        client_id="client-id",
        oauth_token="token",
        base_url="https://api.example.test/helix/",
        client=client,
    )


# =============================================================================
# Successful Responses
# =============================================================================

class TestLookupSuccess:
    """Tests for lookups that get an HTTP response."""

    def test_request_and_normalized_result(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            return httpx.Response(
                200,
                json={"data": [{"id": "141981764", "login": "twitchdev", "display_name": "TwitchDev"}]},
            )

        result = make_api(handler).lookup("twitchdev")

        assert seen["url"] == "https://api.example.test/helix/users?login=twitchdev"
        assert seen["headers"]["Client-Id"] == "client-id"
        assert seen["headers"]["Authorization"] == "Bearer token"
        assert result == {
            "_success": True,
            "_http": 200,
            "users": [{"display_name": "TwitchDev", "_id": "141981764"}],
        }

    def test_unknown_user_empty_list(self):
        result = make_api(lambda request: httpx.Response(200, json={"data": []})).lookup("x")
        assert result["_success"] is True
        assert result["users"] == []

    @pytest.mark.parametrize("status", [400, 401, 429, 500])
    def test_error_status_is_success_with_status(self, status):
        result = make_api(lambda request: httpx.Response(status, text="nope")).lookup("x")
        assert result["_success"] is True
        assert result["_http"] == status
        assert result["users"] == []


# =============================================================================
# Failures
# =============================================================================

class TestLookupFailure:
    """Tests for lookups that fail."""

    def test_timeout_tagged_as_socket_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        result = make_api(handler).lookup("x")
        assert result["_success"] is False
        assert result["_exception"] == "SocketTimeoutException"

    def test_connection_error_tagged_as_io(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        result = make_api(handler).lookup("x")
        assert result["_success"] is False
        assert result["_exception"] == "IOException"
        assert "refused" in result["_exceptionMessage"]

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="not json"),
            httpx.Response(200, json={"nodata": []}),
            httpx.Response(200, json={"data": [{"login": "x"}]}),
        ],
    )
    def test_bad_payload_tagged_as_json(self, response):
        result = make_api(lambda request: response).lookup("x")
        assert result["_success"] is False
        assert result["_http"] == 200
        assert result["_exception"] == "JSONException"

    def test_unexpected_error_tagged_by_class(self):
        def handler(request):
            raise RuntimeError("weird")

        result = make_api(handler).lookup("x")
        assert result["_success"] is False
        assert result["_exception"] == "RuntimeError"


# =============================================================================
# Cache Integration
# =============================================================================

class TestWithCache:
    """Tests for UsernameCache backed by TwitchUsersAPI."""

    def test_resolve_through_api(self):
        calls = []

        def handler(request):
            calls.append(request.url.params["login"])
            return httpx.Response(200, json={"data": [{"id": "7", "display_name": "Foo\\sBar"}]})

        cache = UsernameCache(make_api(handler))
        assert cache.resolve("FooBar") == "Foo Bar"
        assert cache.get_id("foobar") == "7"
        assert calls == ["foobar"]

    def test_outage_starts_cooldown(self):
        calls = []

        def handler(request):
            calls.append(request.url.params["login"])
            raise httpx.ConnectTimeout("slow", request=request)

        cache = UsernameCache(make_api(handler))
        for _ in range(6):
            assert cache.resolve("Foo") in ("foo", "Foo")
        assert len(calls) == 5
        assert cache.in_cooldown

    def test_close_leaves_injected_client_open(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        with TwitchUsersAPI(client=client):
            pass
        assert not client.is_closed
        client.close()

    def test_close_owned_client(self):
        api = TwitchUsersAPI(client_id="a", oauth_token="b")
        api.close()
        assert api.client.is_closed
