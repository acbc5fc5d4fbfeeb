"""Login name to display name and user id cache"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Union

from namecache.config import (
    COOLDOWN,
    FAIL_THRESHOLD,
    FAIL_WINDOW,
    RESERVED_LOGINS,
    TIMEOUT_EXCEPTIONS,
)
from namecache.twitch.api import LookupResult, UserLookupService
from namecache.twitch.tags import unescape_spaces

logger = logging.getLogger(__name__)

MAX_USER_ID = 0xFFFFFFFF


class InvalidUserIDError(ValueError):
    """Raised for a user id that is not an unsigned 32-bit number"""


def parse_user_id(user_id: Union[int, str]) -> int:
    """Parse a Twitch user id into an unsigned 32-bit integer"""
    if isinstance(user_id, bool):
        raise InvalidUserIDError(f"Invalid user id: {user_id!r}")
    if isinstance(user_id, int):
        value = user_id
    elif isinstance(user_id, str) and user_id.isascii() and user_id.isdigit():
        value = int(user_id)
    else:
        raise InvalidUserIDError(f"Invalid user id: {user_id!r}")

    if not 0 <= value <= MAX_USER_ID:
        raise InvalidUserIDError(f"User id out of range: {user_id!r}")
    return value


@dataclass(frozen=True)
class CacheEntry:
    """A cached user, replaced as a whole when new data arrives"""

    display_name: str
    user_id: int

    @property
    def id_str(self) -> str:
        return str(self.user_id)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UsernameCache:
    """
    Caches Twitch display names and user ids keyed by login.

    Misses are filled from chat message tags when possible, otherwise from
    the lookup service. After FAIL_THRESHOLD transport failures inside a
    rolling FAIL_WINDOW, ``resolve`` and ``get_id`` stop calling the lookup
    service until COOLDOWN has passed and return fallback values instead.

    One instance is meant to be shared by every caller; all methods are
    safe to call from multiple threads.
    """

    def __init__(
        self,
        lookup_service: UserLookupService,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.lookup_service = lookup_service
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._entries_lock = threading.Lock()

        # Backoff state, only touched under _backoff_lock
        self._backoff_lock = threading.Lock()
        now = clock()
        self._timeout_expire = now
        self._last_fail_window = now
        self._fail_count = 0

    def __len__(self) -> int:
        with self._entries_lock:
            return len(self._entries)

    def __bool__(self) -> bool:
        # An empty cache is still a cache
        return True

    @property
    def fail_count(self) -> int:
        """Consecutive transport failures in the current window"""
        with self._backoff_lock:
            return self._fail_count

    @property
    def in_cooldown(self) -> bool:
        """Whether remote lookups are currently suppressed"""
        with self._backoff_lock:
            return self._clock() < self._timeout_expire

    def _get_entry(self, login: str) -> Optional[CacheEntry]:
        with self._entries_lock:
            return self._entries.get(login)

    def _put_entry(self, login: str, entry: CacheEntry) -> None:
        with self._entries_lock:
            self._entries[login] = entry

    # === Lookups ===

    def _record_failure(self) -> None:
        with self._backoff_lock:
            now = self._clock()
            if now < self._last_fail_window:
                self._fail_count += 1
            else:
                self._fail_count = 1

            self._last_fail_window = now + FAIL_WINDOW

            if self._fail_count >= FAIL_THRESHOLD:
                self._timeout_expire = now + COOLDOWN
                logger.warning(
                    f"{self._fail_count} failed user lookups in a row, "
                    f"pausing lookups until {self._timeout_expire.isoformat()}"
                )

    def _lookup_user_data(self, login: str) -> None:
        """Look a login up remotely and cache the result"""
        try:
            result: LookupResult = self.lookup_service.lookup(login)
        except Exception:  # pylint: disable=broad-except
            logger.exception(f"User lookup for [{login}] raised")
            return

        try:
            if result["_success"]:
                if result["_http"] != 200:
                    logger.debug(
                        f"Failed to get username [{login}] http error [{result['_http']}]"
                    )
                    return
                users = result["users"]
                if not users:
                    logger.debug(f"No Twitch user found for [{login}]")
                    return
                user = users[0]
                entry = CacheEntry(
                    unescape_spaces(user["display_name"]),
                    parse_user_id(user["_id"]),
                )
                self._put_entry(login, entry)
                return

            exception = result["_exception"]
            if exception.lower() in (name.lower() for name in TIMEOUT_EXCEPTIONS):
                self._record_failure()
            else:
                logger.warning(
                    f"User lookup for [{login}] failed with {exception}: "
                    f"{result.get('_exceptionMessage', '')}"
                )
        except (KeyError, IndexError, TypeError, AttributeError, ValueError):
            logger.exception(f"Malformed user lookup result for [{login}]")

    # === Public API ===

    def resolve(self, login: str, tags: Optional[Mapping[str, str]] = None) -> str:
        """
        Get the display name for a login, best effort.

        ``tags`` are the IRC tags of the chat message the login came from.
        A ``display-name`` tag matching the login is used instead of a remote
        lookup, and cached when a ``user-id`` tag is present too.

        Falls back to the login itself when nothing better is known.
        """
        if tags is None:
            tags = {}
        lower_login = login.lower()

        entry = self._get_entry(lower_login)
        if entry is not None:
            return entry.display_name

        if lower_login in RESERVED_LOGINS:
            return login

        tag_name = tags.get("display-name")
        if tag_name is not None and tag_name.lower() == lower_login:
            tag_id = tags.get("user-id")
            if tag_id:
                self._put_entry(lower_login, CacheEntry(tag_name, parse_user_id(tag_id)))
            return tag_name

        if self.in_cooldown:
            return login

        self._lookup_user_data(lower_login)
        entry = self._get_entry(lower_login)
        return entry.display_name if entry is not None else lower_login

    def exists(self, login: str) -> bool:
        """Check a login is cached, looking it up once if it is not"""
        if self.has_user(login):
            return True

        # Ignores the cool-down unlike resolve/get_id
        self._lookup_user_data(login)
        return self.has_user(login)

    def add_user(self, login: str, display_name: str, user_id: Union[int, str]) -> None:
        """Cache a user unless it is already cached or the data is incomplete"""
        if not display_name or (isinstance(user_id, str) and not user_id):
            return
        if self.has_user(login):
            return

        entry = CacheEntry(unescape_spaces(display_name), parse_user_id(user_id))
        with self._entries_lock:
            self._entries.setdefault(login, entry)

    def has_user(self, login: str) -> bool:
        """Exact-match check, no normalization and no lookup"""
        with self._entries_lock:
            return login in self._entries

    def get(self, login: str) -> str:
        """Get the cached display name, or the login if it is not cached"""
        entry = self._get_entry(login)
        return entry.display_name if entry is not None else login

    def get_id(self, login: str, force_if_missing: bool = False) -> str:
        """Get a user's id as a string, "0" when it cannot be found"""
        lower_login = login.lower()
        entry = self._get_entry(lower_login)
        if entry is not None:
            return entry.id_str

        if self.in_cooldown and not force_if_missing:
            return "0"

        self._lookup_user_data(lower_login)
        entry = self._get_entry(lower_login)
        return entry.id_str if entry is not None else "0"

    def remove_user(self, login: str) -> None:
        with self._entries_lock:
            self._entries.pop(login.lower(), None)

    def get_user_data(self, login: str) -> dict[str, Any]:  # pylint: disable=unused-argument
        """Reserved for full user profiles, always empty for now"""
        return {}
