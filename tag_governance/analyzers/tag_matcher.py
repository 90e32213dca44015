"""
Tag Matcher
Finds non-canonical variant keys in a resource's tag map, case-insensitively.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional


@dataclass(frozen=True)
class TagMatch:
    """Result of matching one tag map against a variant dictionary."""
    has_canonical: bool
    matches: tuple[tuple[str, str], ...] = ()   # (key as found, value)


def match_tags(
    tags: Optional[Mapping[str, str]],
    variants: Iterable[str],
    canonical_key: str,
) -> TagMatch:
    """
    Match a tag map against the ordered variant list.

    Keys are compared with casefold(); the returned key keeps the casing
    stored on the resource so it can be deleted exactly. Matches follow
    variant order, and within one variant the tag map's own order.
    """
    if not tags:
        return TagMatch(has_canonical=False)

    folded = [(k.casefold(), k, v) for k, v in tags.items()]
    canonical = canonical_key.casefold()
    has_canonical = any(fk == canonical for fk, _, _ in folded)

    matches: list[tuple[str, str]] = []
    claimed: set[str] = set()
    for variant in variants:
        target = variant.casefold()
        if target == canonical:
            continue
        for fk, key, value in folded:
            if fk == target and key not in claimed:
                claimed.add(key)
                matches.append((key, "" if value is None else str(value)))

    return TagMatch(has_canonical=has_canonical, matches=tuple(matches))
