"""
Hashtag parsing helpers shared by contacts, hashtags and broadcasts.

Contacts store their tags as one comma separated string; these helpers keep
that representation normalized and answer membership questions on it.
"""
from typing import Iterable, List, Optional, Union
import re

MAX_HASHTAGS_LENGTH = 500

_SPLIT_RE = re.compile(r"[,;\n]")


def normalize_hashtag(tag: Optional[str]) -> str:
    """Return the tag trimmed and without leading '#' characters."""
    if not tag:
        return ""
    return tag.strip().lstrip("#").strip()


def parse_hashtags(value: Union[str, Iterable[str], None]) -> List[str]:
    """Split a comma separated string (or iterable) into normalized tags.

    - Empty items are dropped
    - Duplicates are removed case-insensitively, first occurrence wins
    """
    if not value:
        return []
    items = _SPLIT_RE.split(value) if isinstance(value, str) else list(value)
    seen = set()
    out: List[str] = []
    for raw in items:
        tag = normalize_hashtag(raw if isinstance(raw, str) else str(raw))
        if not tag:
            continue
        key = tag.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(tag)
    return out


def join_hashtags(tags: Iterable[str]) -> Optional[str]:
    """Serialize tags back to the stored form; None when there are none."""
    cleaned = parse_hashtags(list(tags))
    if not cleaned:
        return None
    joined = ",".join(cleaned)
    if len(joined) > MAX_HASHTAGS_LENGTH:
        raise ValueError(f"Hashtags exceed {MAX_HASHTAGS_LENGTH} characters")
    return joined


def has_any_hashtag(stored: Optional[str], wanted: Iterable[str]) -> bool:
    """True when the stored tag string contains any of the wanted tags."""
    wanted_keys = {t.lower() for t in parse_hashtags(list(wanted))}
    if not wanted_keys:
        return True
    return any(t.lower() in wanted_keys for t in parse_hashtags(stored))


def count_hashtag(stored: Optional[str], tag: str) -> int:
    key = normalize_hashtag(tag).lower()
    return sum(1 for t in parse_hashtags(stored) if t.lower() == key)


def rename_hashtag(stored: Optional[str], old: str, new: str) -> Optional[str]:
    """Replace ``old`` with ``new`` inside a stored tag string."""
    old_key = normalize_hashtag(old).lower()
    replaced = [normalize_hashtag(new) if t.lower() == old_key else t for t in parse_hashtags(stored)]
    return join_hashtags(replaced)
