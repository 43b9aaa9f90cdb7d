from __future__ import annotations

from urllib.parse import urlparse

from dateutil import parser as dt_parser


def is_valid_url(value: str | None) -> bool:
    parsed = urlparse((value or "").strip())
    return bool(parsed.scheme in {"http", "https"} and parsed.netloc)


def domain_from_url(url: str) -> str | None:
    netloc = urlparse((url or "").strip()).netloc.lower()
    if netloc.startswith("www."):
        netloc = netloc[4:]
    return netloc or None


def parse_client_time(value):
    if not value or not isinstance(value, str):
        return None
    try:
        return dt_parser.isoparse(value)
    except (ValueError, OverflowError):
        return None


def to_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}
