"""
Bilidash Analytics Aggregator.

Pure projections over one canonical record snapshot:
  - play-count histogram (8 fixed buckets)
  - duration histogram (6 fixed buckets)
  - top-N by play count and by recency
  - title keyword frequency (word cloud)
  - publish-date scatter series (one point per video, grouped by day)

Every sort is stable and the input is never reordered on ties, so equal
scores keep the normalizer's play-count order.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from bilidash.services.analytics.keywords import keyword_frequency
from bilidash.services.records.normalizer import VideoRecord
from bilidash.services.records.timeparse import parse_publish_time

logger = logging.getLogger(__name__)

TOP_N = 20


@dataclass(frozen=True)
class BucketRange:
    label: str
    min: float
    max: float

    def contains(self, value: float) -> bool:
        return self.min <= value < self.max


PLAY_COUNT_RANGES: Tuple[BucketRange, ...] = (
    BucketRange("0-1K", 0, 1_000),
    BucketRange("1K-5K", 1_000, 5_000),
    BucketRange("5K-1万", 5_000, 10_000),
    BucketRange("1万-5万", 10_000, 50_000),
    BucketRange("5万-10万", 50_000, 100_000),
    BucketRange("10万-50万", 100_000, 500_000),
    BucketRange("50万-100万", 500_000, 1_000_000),
    BucketRange("100万+", 1_000_000, math.inf),
)

DURATION_RANGES: Tuple[BucketRange, ...] = (
    BucketRange("0-1分钟", 0, 60),
    BucketRange("1-3分钟", 60, 180),
    BucketRange("3-5分钟", 180, 300),
    BucketRange("5-10分钟", 300, 600),
    BucketRange("10-30分钟", 600, 1_800),
    BucketRange("30分钟+", 1_800, math.inf),
)


# ── View types ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class HistogramBucket:
    label: str
    min: float
    max: float
    count: int


@dataclass(frozen=True)
class RecentVideo:
    record: VideoRecord
    published_at: datetime
    display_date: str


@dataclass(frozen=True)
class ScatterPoint:
    timestamp_ms: int
    play_count: int
    title: str
    date: str


@dataclass(frozen=True)
class ScatterSeries:
    dates: List[str] = field(default_factory=list)
    points: List[ScatterPoint] = field(default_factory=list)


@dataclass(frozen=True)
class DashboardViews:
    play_count_histogram: List[HistogramBucket]
    duration_histogram: List[HistogramBucket]
    top_by_play_count: List[VideoRecord]
    top_by_recency: List[RecentVideo]
    keywords: List[Tuple[str, int]]
    timeline: ScatterSeries


# ── Durations ────────────────────────────────────────────────────────────

def _clock_part(part: str) -> float:
    text = part.strip()
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        return math.nan


def parse_duration_to_seconds(duration: str) -> float:
    """"HH:MM:SS" or "MM:SS" → seconds; anything else → 0."""
    sanitized = duration.strip()
    if not sanitized:
        return 0
    parts = [_clock_part(part) for part in sanitized.split(":")]
    if any(not math.isfinite(part) for part in parts):
        return 0
    if len(parts) == 3:
        hours, minutes, seconds = parts
        return hours * 3600 + minutes * 60 + seconds
    if len(parts) == 2:
        minutes, seconds = parts
        return minutes * 60 + seconds
    return 0


def format_seconds_to_clock(total_seconds: float) -> str:
    if not math.isfinite(total_seconds) or total_seconds <= 0:
        return "00:00"
    total = int(total_seconds)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


# ── Histograms ───────────────────────────────────────────────────────────

def _histogram(values: Sequence[float], ranges: Sequence[BucketRange]) -> List[HistogramBucket]:
    counts = [0] * len(ranges)
    for value in values:
        for index, bucket in enumerate(ranges):
            if bucket.contains(value):
                counts[index] += 1
                break
    return [
        HistogramBucket(label=bucket.label, min=bucket.min, max=bucket.max, count=count)
        for bucket, count in zip(ranges, counts)
    ]


def play_count_histogram(records: Sequence[VideoRecord]) -> List[HistogramBucket]:
    return _histogram([record.play_count for record in records], PLAY_COUNT_RANGES)


def duration_histogram(records: Sequence[VideoRecord]) -> List[HistogramBucket]:
    return _histogram(
        [parse_duration_to_seconds(record.duration) for record in records],
        DURATION_RANGES,
    )


# ── Rankings ─────────────────────────────────────────────────────────────

def top_by_play_count(records: Sequence[VideoRecord], limit: int = TOP_N) -> List[VideoRecord]:
    return sorted(records, key=lambda record: record.play_count, reverse=True)[:limit]


def _display_date(value: datetime) -> str:
    return f"{value.month}月{value.day}日 {value.hour:02d}:{value.minute:02d}"


def top_by_recency(
    records: Sequence[VideoRecord],
    limit: int = TOP_N,
    now: Optional[datetime] = None,
) -> List[RecentVideo]:
    """Most recently published first; unknown publish times are dropped."""
    if now is None:
        now = datetime.now()
    dated = []
    for record in records:
        published_at = parse_publish_time(record.publish_time, now=now)
        if published_at is None:
            continue
        dated.append(RecentVideo(
            record=record,
            published_at=published_at,
            display_date=_display_date(published_at),
        ))
    dated.sort(key=lambda item: item.published_at, reverse=True)
    logger.debug("Recency ranking: %d of %d records dated", len(dated), len(records))
    return dated[:limit]


# ── Keywords ─────────────────────────────────────────────────────────────

def title_keywords(records: Sequence[VideoRecord]) -> List[Tuple[str, int]]:
    return keyword_frequency(record.title for record in records)


# ── Timeline ─────────────────────────────────────────────────────────────

def publish_timeline(
    records: Sequence[VideoRecord], now: Optional[datetime] = None
) -> ScatterSeries:
    """One (day-start, playCount) point per dated record, days ascending."""
    if now is None:
        now = datetime.now()
    groups: Dict[str, Tuple[datetime, List[VideoRecord]]] = {}
    unparsed = set()
    for record in records:
        published_at = parse_publish_time(record.publish_time, now=now)
        if published_at is None:
            unparsed.add(record.publish_time)
            continue
        day = datetime(published_at.year, published_at.month, published_at.day)
        label = f"{day.year}-{day.month:02d}-{day.day:02d}"
        groups.setdefault(label, (day, []))[1].append(record)

    if unparsed:
        logger.debug("Timeline skipped unparseable publish times: %s", sorted(unparsed))

    ordered = sorted(groups.items(), key=lambda entry: entry[1][0])
    points = []
    for label, (day, day_records) in ordered:
        timestamp_ms = int(day.timestamp() * 1000)
        for record in day_records:
            points.append(ScatterPoint(
                timestamp_ms=timestamp_ms,
                play_count=record.play_count,
                title=record.title,
                date=label,
            ))
    return ScatterSeries(dates=[label for label, _ in ordered], points=points)


# ── Dashboard ────────────────────────────────────────────────────────────

def build_dashboard(
    records: Sequence[VideoRecord], now: Optional[datetime] = None
) -> DashboardViews:
    """All five views from one snapshot, sharing a single reference time."""
    if now is None:
        now = datetime.now()
    return DashboardViews(
        play_count_histogram=play_count_histogram(records),
        duration_histogram=duration_histogram(records),
        top_by_play_count=top_by_play_count(records),
        top_by_recency=top_by_recency(records, now=now),
        keywords=title_keywords(records),
        timeline=publish_timeline(records, now=now),
    )
