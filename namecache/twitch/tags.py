"""IRCv3 message tag parsing for Twitch chat lines"""

from typing import Optional

_ESCAPES = {
    ":": ";",
    "s": " ",
    "\\": "\\",
    "r": "\r",
    "n": "\n",
}


def unescape_spaces(value: str) -> str:
    """Collapse escaped spaces (a literal backslash-s) into plain spaces"""
    return value.replace("\\s", " ")


def unescape_tag_value(value: str) -> str:
    """Undo IRCv3 tag value escaping"""
    if "\\" not in value:
        return value

    out: list[str] = []
    chars = iter(value)
    for char in chars:
        if char != "\\":
            out.append(char)
            continue
        nxt = next(chars, None)
        if nxt is None:
            # A lone trailing backslash is dropped
            break
        out.append(_ESCAPES.get(nxt, nxt))
    return "".join(out)


def parse_tags(line: str) -> dict[str, str]:
    """Get the tag mapping from a raw chat line, empty if it has none"""
    if not line.startswith("@"):
        return {}

    block = line[1:].split(" ", 1)[0]
    tags: dict[str, str] = {}
    for item in block.split(";"):
        if not item:
            continue
        key, _, value = item.partition("=")
        tags[key] = unescape_tag_value(value)
    return tags


def parse_login(line: str) -> Optional[str]:
    """Get the sender's login from the ``:login!login@host`` prefix"""
    rest = line
    if rest.startswith("@"):
        parts = rest.split(" ", 1)
        if len(parts) < 2:
            return None
        rest = parts[1]

    rest = rest.lstrip()
    if not rest.startswith(":"):
        return None

    prefix = rest[1:].split(" ", 1)[0]
    if "!" not in prefix:
        # Server prefix (tmi.twitch.tv), not a user
        return None
    login = prefix.split("!", 1)[0]
    return login.lower() or None
