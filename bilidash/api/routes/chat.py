"""
Bilidash API — Chat route.

POST /chat streams the assistant's reply as plain UTF-8 text. The system
prompt is rebuilt from the project's current records on every request.
"""
from __future__ import annotations

import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from bilidash.core.config import get_settings
from bilidash.core.dependencies import get_chat_service, get_project_service
from bilidash.schemas.schemas import ChatRequest
from bilidash.services.chat.chat_service import ChatService
from bilidash.services.chat.prompt import build_system_prompt, sanitize_messages
from bilidash.services.projects.project_service import ProjectService

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(tags=["Chat"])


async def _relay(fragments: AsyncIterator[str]) -> AsyncIterator[bytes]:
    try:
        async for fragment in fragments:
            yield fragment.encode("utf-8")
    except Exception as e:
        logger.error(f"Chat stream interrupted: {e}")
        raise
    finally:
        await fragments.aclose()


@router.post("/chat")
async def chat(
    request: ChatRequest,
    projects: ProjectService = Depends(get_project_service),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Stream an analysis reply grounded on one project's videos."""
    if not chat_service.available:
        raise HTTPException(status_code=500, detail="未配置 DEEPSEEK_API_KEY")

    project_id = request.project_id
    if not project_id or not isinstance(project_id, str):
        raise HTTPException(status_code=400, detail="projectId 必填")

    if not isinstance(request.messages, list) or not request.messages:
        raise HTTPException(status_code=400, detail="messages 不能为空")

    messages = sanitize_messages(request.messages)
    if not messages:
        raise HTTPException(status_code=400, detail="messages 内容无效")

    try:
        project = await projects.load_records(project_id)
        system_prompt = build_system_prompt(
            project_id=project_id,
            project_name=project.name,
            videos=project.videos,
            limit=settings.max_videos_in_prompt,
        )
        fragments = await chat_service.stream_reply(system_prompt, messages)
    except Exception as e:
        logger.error(f"[chat] failed to start completion for {project_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e) or "服务异常")

    return StreamingResponse(
        _relay(fragments),
        media_type="text/plain; charset=utf-8",
        headers={"Cache-Control": "no-cache"},
    )
