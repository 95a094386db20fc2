"""URL query parameter parsing.

Used to confirm that an upload URL declares resumable mode and to detect
an API key embedded in it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from urllib.parse import unquote_plus

from chunkrelay.core.errors import ValidationError

QueryValue = str | int | float

_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


@dataclass
class ParsedUrl:
    """A URL split into its base and query parameters.

    Attributes:
        url: Everything before the first "?".
        query_parameters: Key to list of values, in the order they appear.
    """

    url: str
    query_parameters: dict[str, list[QueryValue]] = field(default_factory=dict)

    def get(self, key: str) -> list[QueryValue]:
        return self.query_parameters.get(key, [])


def _coerce(value: str) -> QueryValue:
    if not _NUMBER_RE.match(value):
        return value
    if re.fullmatch(r"[+-]?\d+", value):
        return int(value)
    return float(value)


def parse_query_parameters(url: str) -> ParsedUrl:
    """Parse the query string of a URL.

    Numeric-looking values are converted to int or float. A key without
    "=" maps to an empty string.

    Args:
        url: URL that may include query parameters.

    Returns:
        ParsedUrl with the base URL and a parameter mapping.

    Raises:
        ValidationError: If url is not a string.
    """
    if not isinstance(url, str):
        raise ValidationError("URL must be a string including the query parameters")

    base, _, query = url.partition("?")
    parsed = ParsedUrl(url=base)
    for pair in query.split("&"):
        if not pair.strip():
            continue
        key, _, value = pair.partition("=")
        key = unquote_plus(key.strip())
        parsed.query_parameters.setdefault(key, []).append(
            _coerce(unquote_plus(value.strip()))
        )
    return parsed


def declares_resumable(parsed: ParsedUrl) -> bool:
    """Check whether the URL carries uploadType=resumable."""
    return "resumable" in parsed.get("uploadType")


def has_api_key(parsed: ParsedUrl) -> bool:
    """Check whether the URL carries a non-empty key parameter."""
    return any(value != "" for value in parsed.get("key"))
