from datetime import datetime

import pytest

from bilidash.services.analytics.aggregator import (
    DURATION_RANGES,
    PLAY_COUNT_RANGES,
    build_dashboard,
    duration_histogram,
    format_seconds_to_clock,
    parse_duration_to_seconds,
    play_count_histogram,
    publish_timeline,
    top_by_play_count,
    top_by_recency,
)
from bilidash.services.records.normalizer import VideoRecord
from bilidash.services.records.timeparse import UNKNOWN_PUBLISH_TIME

NOW = datetime(2024, 6, 15, 12, 0, 0)


def make_record(key, play_count=0, duration="00:00", publish_time=UNKNOWN_PUBLISH_TIME, title=None):
    return VideoRecord(
        key=key,
        title=title or f"video {key}",
        uploader="up",
        play_count=play_count,
        duration=duration,
        publish_time=publish_time,
        danmaku_count=0,
    )


def test_play_count_buckets_follow_half_open_boundaries():
    records = [make_record(str(i), play) for i, play in enumerate([0, 999, 1000, 4999, 1_000_000])]

    histogram = play_count_histogram(records)

    assert [bucket.count for bucket in histogram] == [2, 2, 0, 0, 0, 0, 0, 1]
    assert [bucket.label for bucket in histogram] == [r.label for r in PLAY_COUNT_RANGES]


def test_play_count_histogram_counts_every_record():
    plays = [0, 5_000, 9_999, 10_000, 49_999, 50_000, 100_000, 499_999, 500_000, 999_999, 10**9]
    records = [make_record(str(i), play) for i, play in enumerate(plays)]

    histogram = play_count_histogram(records)

    assert sum(bucket.count for bucket in histogram) == len(records)
    assert [bucket.count for bucket in histogram] == [1, 0, 2, 2, 1, 2, 2, 1]


@pytest.mark.parametrize(
    "duration, seconds",
    [
        ("1:02:03", 3723),
        ("3:45", 225),
        ("00:59", 59),
        ("10:", 600),
        ("abc", 0),
        ("1:xx", 0),
        ("90", 0),
        ("", 0),
        ("1:2:3:4", 0),
    ],
)
def test_parse_duration_to_seconds(duration, seconds):
    assert parse_duration_to_seconds(duration) == seconds


def test_duration_histogram():
    durations = ["0:30", "1:00", "2:59", "3:00", "5:00", "9:59", "10:00", "29:59", "30:00", "2:00:00", "bad"]
    records = [make_record(str(i), duration=d) for i, d in enumerate(durations)]

    histogram = duration_histogram(records)

    assert [bucket.count for bucket in histogram] == [2, 2, 1, 2, 2, 2]
    assert [bucket.label for bucket in histogram] == [r.label for r in DURATION_RANGES]
    assert sum(bucket.count for bucket in histogram) == len(records)


@pytest.mark.parametrize(
    "seconds, clock",
    [(0, "00:00"), (-3, "00:00"), (float("nan"), "00:00"), (59, "00:59"), (225, "03:45"), (3723, "01:02:03")],
)
def test_format_seconds_to_clock(seconds, clock):
    assert format_seconds_to_clock(seconds) == clock


def test_top_by_play_count_limits_and_keeps_tie_order():
    records = [make_record(f"k{i}", play_count=i % 3) for i in range(30)]

    top = top_by_play_count(records)

    assert len(top) == 20
    assert [record.play_count for record in top[:10]] == [2] * 10
    assert [record.key for record in top[:3]] == ["k2", "k5", "k8"]


def test_top_by_recency_orders_by_parsed_time_and_drops_unknown():
    records = [
        make_record("old", publish_time="2023-01-01 00:00:00"),
        make_record("unknown"),
        make_record("newest", publish_time="刚刚"),
        make_record("yesterday", publish_time="昨天"),
        make_record("garbage", publish_time="未知"),
        make_record("mid", publish_time="2024-03-05 18:07:00"),
    ]

    recent = top_by_recency(records, now=NOW)

    assert [item.record.key for item in recent] == ["newest", "yesterday", "mid", "old"]
    assert recent[2].display_date == "3月5日 18:07"
    assert recent[1].published_at == datetime(2024, 6, 14)


def test_top_by_recency_limit():
    records = [make_record(str(i), publish_time=f"2024-01-{i + 1:02d} 00:00:00") for i in range(25)]
    recent = top_by_recency(records, now=NOW)
    assert len(recent) == 20
    assert recent[0].record.key == "24"


def test_publish_timeline_groups_by_day():
    records = [
        make_record("a", 10, publish_time="2024-01-02 10:00:00", title="A"),
        make_record("b", 20, publish_time="2024-01-01 09:00:00", title="B"),
        make_record("c", 30, publish_time="2024-01-02 08:00:00", title="C"),
        make_record("d", 40),
    ]

    series = publish_timeline(records, now=NOW)

    assert series.dates == ["2024-01-01", "2024-01-02"]
    assert [(point.title, point.date, point.play_count) for point in series.points] == [
        ("B", "2024-01-01", 20),
        ("A", "2024-01-02", 10),
        ("C", "2024-01-02", 30),
    ]
    day_two = int(datetime(2024, 1, 2).timestamp() * 1000)
    assert series.points[1].timestamp_ms == day_two
    assert series.points[2].timestamp_ms == day_two


def test_build_dashboard_on_empty_input():
    views = build_dashboard([], now=NOW)

    assert [bucket.count for bucket in views.play_count_histogram] == [0] * 8
    assert [bucket.count for bucket in views.duration_histogram] == [0] * 6
    assert views.top_by_play_count == []
    assert views.top_by_recency == []
    assert views.keywords == []
    assert views.timeline.dates == []
    assert views.timeline.points == []


def test_build_dashboard_views():
    records = [
        make_record("a", 2_000_000, "1:02:03", "2024-01-02 08:00:00", "美食探店vlog"),
        make_record("b", 12_345, "3:45", "2023-11-15 06:13:20", "懒人必看美食教程"),
    ]

    views = build_dashboard(records, now=NOW)

    assert views.play_count_histogram[3].count == 1
    assert views.play_count_histogram[7].count == 1
    assert views.duration_histogram[2].count == 1
    assert views.duration_histogram[5].count == 1
    assert [record.key for record in views.top_by_play_count] == ["a", "b"]
    assert [item.record.key for item in views.top_by_recency] == ["a", "b"]
    assert views.keywords == [("美食", 2)]
    assert views.timeline.dates == ["2023-11-15", "2024-01-02"]
