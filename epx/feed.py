"""Device feed payload: the screen list an e-paper client polls, plus its ETag."""

import json
from dataclasses import dataclass
from datetime import datetime, timezone

from epx.fingerprint import fingerprint
from epx.logging import audit, get_logger

log = get_logger("feed")

DEFAULT_DURATION = 30  # seconds a screen stays up


@dataclass
class Screen:
    """One displayable screen as stored by the application layer."""
    id: str
    name: str
    duration: int = DEFAULT_DURATION
    bmp_data: str | None = None  # base64 bitmap, None until an image is uploaded


def feed_etag(entries: list[dict]) -> str:
    """MD5 hex of the compact JSON of the feed entries.

    The timestamp is not part of the hash so an unchanged screen list keeps
    the same ETag between polls.
    """
    payload = json.dumps(entries, separators=(",", ":"), ensure_ascii=False)
    return fingerprint(payload.encode("utf-8"))


def build_feed(screens: list[Screen], width: int, height: int, now: datetime | None = None) -> dict:
    """Build the JSON-ready payload served to a device.

    Screens without bitmap data are skipped. Every entry carries the device's
    panel size so the client can validate the bitmap before drawing it.
    """
    entries = [
        {
            "id": s.id,
            "name": s.name,
            "duration": s.duration,
            "bmpData": s.bmp_data,
            "width": width,
            "height": height,
        }
        for s in screens
        if s.bmp_data
    ]
    etag = feed_etag(entries)
    now = now or datetime.now(timezone.utc)

    audit("feed.built", logger=log,
          screens=len(entries), skipped=len(screens) - len(entries), etag=etag)
    return {
        "screens": entries,
        "etag": etag,
        "timestamp": now.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
    }


def _strip_tag(tag: str) -> str:
    tag = tag.strip()
    if tag.startswith("W/"):
        tag = tag[2:]
    return tag.strip('"')


def is_not_modified(if_none_match: str | None, etag: str) -> bool:
    """True when an If-None-Match header value matches ``etag``.

    Accepts bare or quoted tags, weak ``W/`` tags, comma-separated lists
    and ``*``.
    """
    if not if_none_match:
        return False
    if if_none_match.strip() == "*":
        return True
    return any(_strip_tag(t) == etag for t in if_none_match.split(","))
