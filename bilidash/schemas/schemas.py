"""
Bilidash API Schemas — Pydantic v2 models for request/response validation.

Responses serialize with camelCase aliases, the field naming the dashboard
frontend reads (``playCount``, ``publishTime`` …).
"""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True,
    )


# ═══════════════════════════════════════════════════════════════════════
# Records
# ═══════════════════════════════════════════════════════════════════════

class VideoRecordSchema(CamelModel):
    key: str
    title: str
    uploader: str
    play_count: int
    duration: str
    publish_time: str
    danmaku_count: int
    cover_url: Optional[str] = None
    video_url: Optional[str] = None


# ═══════════════════════════════════════════════════════════════════════
# Projects
# ═══════════════════════════════════════════════════════════════════════

class ProjectSummarySchema(CamelModel):
    id: str
    name: str
    create_time: Optional[str] = None
    video_count: int = 0


class ProjectDetail(CamelModel):
    id: str
    name: str
    total_videos: int
    total_play_count: int
    total_danmaku_count: int
    videos: List[VideoRecordSchema]


class ProjectRename(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)


# ═══════════════════════════════════════════════════════════════════════
# Dashboard
# ═══════════════════════════════════════════════════════════════════════

class HistogramBucketSchema(CamelModel):
    label: str
    min: float
    max: Optional[float] = None  # None for the open-ended last bucket
    count: int


class RecentVideoSchema(VideoRecordSchema):
    display_date: str


class KeywordSchema(CamelModel):
    name: str
    value: int


class ScatterPointSchema(CamelModel):
    value: List[int]  # [day-start epoch ms, playCount]
    title: str
    date: str


class TimelineSchema(CamelModel):
    dates: List[str]
    data: List[ScatterPointSchema]


class DashboardResponse(CamelModel):
    project_id: str
    project_name: str
    total_videos: int
    play_count_distribution: List[HistogramBucketSchema]
    duration_distribution: List[HistogramBucketSchema]
    top_by_play_count: List[VideoRecordSchema]
    top_by_date: List[RecentVideoSchema]
    word_cloud: List[KeywordSchema]
    timeline: TimelineSchema


# ═══════════════════════════════════════════════════════════════════════
# Chat
# ═══════════════════════════════════════════════════════════════════════

class ChatRequest(CamelModel):
    project_id: Optional[Any] = None
    messages: Optional[Any] = None
