"""
Bilidash API — Project routes.

  - GET    /projects                  — project list with video counts
  - GET    /projects/{id}             — normalized records of one project
  - PATCH  /projects/{id}             — rename
  - DELETE /projects/{id}             — delete
  - GET    /projects/{id}/dashboard   — histograms, rankings, word cloud, timeline
"""
from __future__ import annotations

import logging
import math
from dataclasses import asdict
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from bilidash.core.config import get_settings
from bilidash.core.dependencies import get_project_service
from bilidash.schemas.schemas import (
    DashboardResponse,
    HistogramBucketSchema,
    KeywordSchema,
    ProjectDetail,
    ProjectRename,
    ProjectSummarySchema,
    RecentVideoSchema,
    ScatterPointSchema,
    TimelineSchema,
    VideoRecordSchema,
)
from bilidash.services.analytics.aggregator import HistogramBucket, build_dashboard
from bilidash.services.projects.project_service import ProjectRecords, ProjectService

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(prefix="/projects", tags=["Projects"])


async def _load_or_404(project_id: str, service: ProjectService) -> ProjectRecords:
    project = await service.load_records(project_id)
    if not project.found:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def _bucket_schema(bucket: HistogramBucket) -> HistogramBucketSchema:
    return HistogramBucketSchema(
        label=bucket.label,
        min=bucket.min,
        max=None if math.isinf(bucket.max) else bucket.max,
        count=bucket.count,
    )


@router.get("", response_model=List[ProjectSummarySchema])
async def list_projects(
    limit: int = Query(settings.project_list_limit, ge=1, le=settings.project_list_limit),
    service: ProjectService = Depends(get_project_service),
):
    """List projects with their raw video counts."""
    projects = await service.list_projects(limit=limit)
    return [ProjectSummarySchema(**asdict(project)) for project in projects]


@router.get("/{project_id}", response_model=ProjectDetail)
async def get_project(
    project_id: str,
    service: ProjectService = Depends(get_project_service),
):
    """Normalized records of one project, highest play count first."""
    project = await _load_or_404(project_id, service)
    return ProjectDetail(
        id=project.id,
        name=project.name,
        total_videos=len(project.videos),
        total_play_count=sum(video.play_count for video in project.videos),
        total_danmaku_count=sum(video.danmaku_count for video in project.videos),
        videos=[VideoRecordSchema(**video.to_dict()) for video in project.videos],
    )


@router.patch("/{project_id}", response_model=ProjectSummarySchema)
async def rename_project(
    project_id: str,
    data: ProjectRename,
    service: ProjectService = Depends(get_project_service),
):
    if not data.name.strip():
        raise HTTPException(status_code=400, detail="Project name must not be blank")
    if not await service.rename(project_id, data.name):
        raise HTTPException(status_code=404, detail="Project not found")
    summary = await service.get_summary(project_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return ProjectSummarySchema(**asdict(summary))


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    service: ProjectService = Depends(get_project_service),
):
    if not await service.delete(project_id):
        raise HTTPException(status_code=404, detail="Project not found")
    return {"id": project_id, "status": "deleted"}


@router.get("/{project_id}/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    project_id: str,
    service: ProjectService = Depends(get_project_service),
):
    """All dashboard views, recomputed from the current records."""
    project = await _load_or_404(project_id, service)
    views = build_dashboard(project.videos)

    return DashboardResponse(
        project_id=project.id,
        project_name=project.name,
        total_videos=len(project.videos),
        play_count_distribution=[_bucket_schema(b) for b in views.play_count_histogram],
        duration_distribution=[_bucket_schema(b) for b in views.duration_histogram],
        top_by_play_count=[VideoRecordSchema(**v.to_dict()) for v in views.top_by_play_count],
        top_by_date=[
            RecentVideoSchema(**item.record.to_dict(), display_date=item.display_date)
            for item in views.top_by_recency
        ],
        word_cloud=[KeywordSchema(name=word, value=count) for word, count in views.keywords],
        timeline=TimelineSchema(
            dates=views.timeline.dates,
            data=[
                ScatterPointSchema(
                    value=[point.timestamp_ms, point.play_count],
                    title=point.title,
                    date=point.date,
                )
                for point in views.timeline.points
            ],
        ),
    )
