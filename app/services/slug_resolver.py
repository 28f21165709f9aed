"""City/category path segments for the directory's SEO pages.

A directory landing page lives at ``/directory/{city}-{category}-photographers``
where both parts are canonical fragments (lower-case, hyphen-separated).
``resolve_city_category`` turns such a segment back into the exact
allow-list entries.

The parse is greedy: tokens are taken from the right until the shortest
suffix that names a known category is found, and everything to its left is
the city. Names that collide (a city whose trailing words, together with a
category, also spell a longer category) resolve to the shorter category.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from app.core.errors import NotFoundError

PAGE_SUFFIX = "photographers"
DIRECTORY_ROOT = "/directory"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_WORD_START = re.compile(r"\b(?<!['’`])[a-z]")


def titleize(value: str) -> str:
    """Capitalise the first letter of every word, lower-casing the rest.

    ``"new york"`` → ``"New York"``; ``"o'brien"`` → ``"O'brien"``.
    """
    return _WORD_START.sub(lambda m: m.group().upper(), value.replace("_", " ").lower())


def canonical_fragment(value: str) -> str:
    return _NON_ALNUM.sub("-", value.lower()).strip("-")


def city_category_slug(city: str, category: str) -> str:
    return f"{canonical_fragment(city)}-{canonical_fragment(category)}"


def page_segment(city: str, category: str) -> str:
    return f"{city_category_slug(city, category)}-{PAGE_SUFFIX}"


def category_page_path(city: str, category: str) -> str:
    return f"{DIRECTORY_ROOT}/{page_segment(city, category)}"


def profile_path(city: str, category: str, slug: str) -> str:
    return f"{DIRECTORY_ROOT}/{city_category_slug(city, category)}/{slug}"


def resolve_city_category(
    segment: str,
    cities: Sequence[str],
    categories: Sequence[str],
) -> tuple[str, str]:
    """Parse ``{city}-{category}-photographers`` into allow-list entries.

    Raises NotFoundError when the suffix is missing, no trailing run of
    tokens names a category, or the remaining tokens do not name a city.
    """
    tokens = segment.split("-")
    if len(tokens) < 3 or tokens[-1] != PAGE_SUFFIX:
        raise NotFoundError()
    tokens = tokens[:-1]

    known_categories = set(categories)
    category: str | None = None
    split_at = len(tokens)
    while split_at > 0:
        split_at -= 1
        candidate = titleize(" ".join(tokens[split_at:]))
        if candidate in known_categories:
            category = candidate
            break

    if category is None:
        raise NotFoundError()

    city = titleize(" ".join(tokens[:split_at]))
    if city not in set(cities):
        raise NotFoundError()

    return city, category
