"""
Profile trailer grammar.

The composer asks the model to end its answer with the chosen candidate ids:

    trailer := "[PROFILES:" ws? id ("," ws? id)* ws? "]"

Ids are trimmed, empty tokens are dropped, duplicates keep their first position.
"""

import re
from typing import Iterable, List

TRAILER_PREFIX = "[PROFILES:"
TRAILER_SUFFIX = "]"

_TRAILER_PATTERN = re.compile(r"\[PROFILES:\s*([^\]]*?)\s*\]")


def _split_ids(body: str) -> List[str]:
    ids: List[str] = []
    for token in body.split(","):
        token = token.strip()
        if token and token not in ids:
            ids.append(token)
    return ids


def parse_trailer(text: str) -> List[str]:
    """Ids from the first trailer in ``text``, or [] when there is none"""
    if not text:
        return []
    match = _TRAILER_PATTERN.search(text)
    if not match:
        return []
    return _split_ids(match.group(1))


def has_trailer(text: str) -> bool:
    return bool(text) and _TRAILER_PATTERN.search(text) is not None


def strip_trailer(text: str) -> str:
    """Remove every trailer and trim the surrounding whitespace"""
    if not text:
        return ""
    return _TRAILER_PATTERN.sub("", text).strip()


def format_trailer(ids: Iterable[str]) -> str:
    """Render ids as a trailer; ``parse_trailer(format_trailer(ids))`` recovers them"""
    return f"{TRAILER_PREFIX} {', '.join(_split_ids(','.join(str(i) for i in ids)))}{TRAILER_SUFFIX}"
