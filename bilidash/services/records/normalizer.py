"""
Bilidash Record Normalizer.

Turns one raw project document from the document store into canonical video
records. Upstream crawlers disagree on field names and types, so every
canonical field is resolved through an ordered alias list and degrades to a
fixed default instead of failing:

    raw document ─► entries ─► per-field alias resolution ─► VideoRecord[]
                                                            (playCount desc)
"""
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from bilidash.core.config import get_settings
from bilidash.services.records.timeparse import resolve_publish_time

logger = logging.getLogger(__name__)

# ── Defaults ─────────────────────────────────────────────────────────────

DEFAULT_TITLE = "未命名稿件"
DEFAULT_UPLOADER = "未知投稿者"
DEFAULT_DURATION = "00:00"

# ── Field aliases (highest priority first) ───────────────────────────────

KEY_FIELDS = ("id", "bvid")
TITLE_FIELDS = ("title",)
UPLOADER_FIELDS = ("uploader", "author", "up")
PLAY_COUNT_FIELDS = ("playCount", "play_count", "view")
DANMAKU_COUNT_FIELDS = ("danmakuCount", "danmaku_count", "danmuCount", "reply")
DURATION_FIELDS = ("duration", "length")
COVER_FIELDS = ("cover",)
VIDEO_URL_FIELDS = ("videourl", "videoUrl", "url")


@dataclass(frozen=True)
class VideoRecord:
    """Canonical, schema-stable video entry."""
    key: str
    title: str
    uploader: str
    play_count: int
    duration: str
    publish_time: str
    danmaku_count: int
    cover_url: Optional[str] = None
    video_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ── Field resolution ─────────────────────────────────────────────────────

def extract_entries(payload: Any) -> List[Mapping[str, Any]]:
    """Object-typed entries of a list, or of a keyed map's values."""
    if isinstance(payload, (list, tuple)):
        candidates: Iterable[Any] = payload
    elif isinstance(payload, Mapping):
        candidates = payload.values()
    else:
        return []
    return [item for item in candidates if isinstance(item, Mapping)]


def pick_string(item: Mapping[str, Any], fields: Iterable[str]) -> Optional[str]:
    """First alias holding a non-blank string, stripped."""
    for name in fields:
        value = item.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _first_defined(item: Mapping[str, Any], fields: Iterable[str]) -> Any:
    for name in fields:
        value = item.get(name)
        if value is not None:
            return value
    return None


def coerce_count(value: Any) -> int:
    """Numeric-like value → non-negative int; anything unparseable → 0."""
    if isinstance(value, bool):
        number = float(value)
    elif isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        if "_" in text:
            return 0
        try:
            number = float(text)
        except ValueError:
            return 0
    else:
        return 0
    if not math.isfinite(number) or number <= 0:
        return 0
    return int(number)


def pick_count(item: Mapping[str, Any], fields: Iterable[str]) -> int:
    return coerce_count(_first_defined(item, fields))


def normalize_cover_url(cover: Optional[str], cover_base_url: str) -> Optional[str]:
    if not cover:
        return None
    if cover.startswith("//"):
        return f"https:{cover}"
    if cover.startswith(("http://", "https://")):
        return cover
    return f"{cover_base_url}{cover}"


def _unique_key(candidate: str, fallback: str, seen: set) -> str:
    if candidate not in seen:
        return candidate
    key = fallback
    suffix = 1
    while key in seen:
        key = f"{fallback}-{suffix}"
        suffix += 1
    return key


# ── Public API ───────────────────────────────────────────────────────────

def normalize_entry(
    item: Mapping[str, Any], key: str, cover_base_url: str
) -> VideoRecord:
    return VideoRecord(
        key=key,
        title=pick_string(item, TITLE_FIELDS) or DEFAULT_TITLE,
        uploader=pick_string(item, UPLOADER_FIELDS) or DEFAULT_UPLOADER,
        play_count=pick_count(item, PLAY_COUNT_FIELDS),
        duration=pick_string(item, DURATION_FIELDS) or DEFAULT_DURATION,
        publish_time=resolve_publish_time(item),
        danmaku_count=pick_count(item, DANMAKU_COUNT_FIELDS),
        cover_url=normalize_cover_url(pick_string(item, COVER_FIELDS), cover_base_url),
        video_url=pick_string(item, VIDEO_URL_FIELDS),
    )


def normalize_records(
    document: Any, cover_base_url: Optional[str] = None
) -> List[VideoRecord]:
    """
    Normalize one raw project document into canonical records.

    Never raises on malformed input: a document without a usable ``data``
    container yields an empty list, and each unresolvable field falls back
    to its default. The result is sorted by play count, highest first;
    ties keep their original order.
    """
    if not isinstance(document, Mapping):
        return []
    if cover_base_url is None:
        cover_base_url = get_settings().cover_base_url

    document_id = str(document.get("_id") or "")
    entries = extract_entries(document.get("data"))

    records: List[VideoRecord] = []
    seen: set = set()
    for index, item in enumerate(entries):
        positional = f"{document_id}-{index}"
        key = _unique_key(pick_string(item, KEY_FIELDS) or positional, positional, seen)
        seen.add(key)
        records.append(normalize_entry(item, key, cover_base_url))

    records.sort(key=lambda record: record.play_count, reverse=True)
    logger.debug(
        "Normalized project %s: %d entries → %d records",
        document_id, len(entries), len(records),
    )
    return records
