"""Main entry point"""

import argparse
import logging
import sys
from typing import Optional, TextIO

from namecache.config import LOG_LEVEL, missing_env
from namecache.services.username_cache import InvalidUserIDError, UsernameCache
from namecache.twitch.api import TwitchUsersAPI
from namecache.twitch.tags import parse_login, parse_tags

logger = logging.getLogger("namecache")


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser"""
    parser = argparse.ArgumentParser(
        prog="namecache",
        description="Resolve Twitch logins to display names and user ids",
    )
    parser.add_argument("logins", nargs="*", help="logins to resolve")
    parser.add_argument(
        "--ids", action="store_true", help="print user ids only"
    )
    parser.add_argument(
        "--raw",
        action="store_true",
        help="read raw IRC chat lines from stdin and resolve each sender",
    )
    return parser


def format_user(
    cache: UsernameCache,
    login: str,
    ids_only: bool,
    tags: Optional[dict[str, str]] = None,
) -> str:
    """Format a resolved user for output"""
    display_name = cache.resolve(login, tags)
    # resolve already did the one lookup allowed for this login
    user_id = cache.get_id(login) if cache.has_user(login.lower()) else "0"
    if ids_only:
        return user_id
    return f"{login} -> {display_name} ({user_id})"


def resolve_raw_lines(
    cache: UsernameCache, lines: TextIO, ids_only: bool
) -> list[str]:
    """Resolve the sender of every chat line, using its tags first"""
    output: list[str] = []
    for line in lines:
        line = line.rstrip("\r\n")
        login = parse_login(line)
        if not login:
            continue
        try:
            output.append(format_user(cache, login, ids_only, parse_tags(line)))
        except InvalidUserIDError as err:
            logger.warning(f"Skipping chat line from {login}: {err}")
    return output


def main(argv: Optional[list[str]] = None) -> int:
    """Run the CLI"""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    if missing_env:
        print(
            "Missing required environment variables: " + ", ".join(missing_env),
            file=sys.stderr,
        )
        return 1

    with TwitchUsersAPI() as api:
        cache = UsernameCache(api)
        if args.raw:
            output = resolve_raw_lines(cache, sys.stdin, args.ids)
        else:
            output = [format_user(cache, login, args.ids) for login in args.logins]

    for line in output:
        print(line)
    logger.debug(f"Cached {len(cache)} users")
    return 0


if __name__ == "__main__":
    sys.exit(main())
