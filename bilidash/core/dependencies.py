"""
Bilidash request dependencies.

Long-lived clients are attached to ``app.state`` by the lifespan hook and
resolved per request here, so tests can swap them with
``app.dependency_overrides``.
"""
from __future__ import annotations

from fastapi import Request

from bilidash.services.chat.chat_service import ChatService
from bilidash.services.projects.project_service import ProjectService


def get_project_service(request: Request) -> ProjectService:
    return request.app.state.project_service


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service
