"""Twitch user lookups"""

import logging
from typing import Any, Optional, Protocol, TypedDict

import httpx

from namecache.config import (
    LOOKUP_TIMEOUT,
    TWITCH_API_URL,
    TWITCH_CLIENT_ID,
    TWITCH_OAUTH_TOKEN,
)

logger = logging.getLogger(__name__)


class UserRecord(TypedDict):
    """Structure for a single looked up user"""

    display_name: str
    _id: str


class _LookupResultBase(TypedDict):
    _success: bool
    _http: int
    users: list[UserRecord]


class LookupResult(_LookupResultBase, total=False):
    """Outcome of a user lookup, failures carry an exception tag"""

    _exception: str
    _exceptionMessage: str


class UserLookupService(Protocol):
    """Anything that can look a login up remotely"""

    def lookup(self, login: str) -> LookupResult: ...


def failed_result(exception: str, message: str = "", http: int = 0) -> LookupResult:
    """Build a lookup result for a request that failed"""
    return {
        "_success": False,
        "_http": http,
        "users": [],
        "_exception": exception,
        "_exceptionMessage": message,
    }


class TwitchUsersAPI:
    """Looks users up through the Twitch Helix ``/users`` endpoint"""

    def __init__(
        self,
        client_id: str = TWITCH_CLIENT_ID,
        oauth_token: str = TWITCH_OAUTH_TOKEN,
        base_url: str = TWITCH_API_URL,
        timeout: float = LOOKUP_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = {
            "Client-Id": client_id,
            "Authorization": f"Bearer {oauth_token}",
            "Accept": "application/json",
        }
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        """Close the HTTP client if this instance created it"""
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "TwitchUsersAPI":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def lookup(self, login: str) -> LookupResult:
        """Get a user's display name and id by login"""
        try:
            response = self.client.get(
                f"{self.base_url}/users",
                params={"login": login},
                headers=self.headers,
            )
        except httpx.TimeoutException as err:
            return failed_result("SocketTimeoutException", str(err))
        except httpx.TransportError as err:
            return failed_result("IOException", str(err))
        except Exception as err:  # pylint: disable=broad-except
            logger.error(f"Error looking up Twitch user {login}: {err}")
            return failed_result(type(err).__name__, str(err))

        result: LookupResult = {
            "_success": True,
            "_http": response.status_code,
            "users": [],
        }
        if response.status_code != 200:
            return result

        try:
            payload: dict[str, Any] = response.json()
            result["users"] = [
                {"display_name": user["display_name"], "_id": str(user["id"])}
                for user in payload["data"]
            ]
        except (ValueError, KeyError, TypeError) as err:
            return failed_result("JSONException", repr(err), http=response.status_code)

        return result
