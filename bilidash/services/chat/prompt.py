"""
Bilidash Chat Prompt Builder.

Serializes a project's canonical records into the system prompt for the
analysis assistant. Totals are computed here from the full record list; only
the digest is truncated.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Sequence

from bilidash.services.records.normalizer import VideoRecord

ALLOWED_ROLES = ("user", "assistant")

EMPTY_PROJECT_HINT = "当前项目没有任何稿件，提醒用户先同步最新的数据。"

ASSISTANT_INSTRUCTIONS = (
    "你是一名资深的 Bilibili 数据分析与热点标题共创顾问，具备内容策划、热点捕捉与 A/B 标题调优经验。",
    "请参考以下项目数据，结合用户的提问或需求，在回答中做到：",
    "1) 先给出清晰的洞察或建议，引用具体稿件或数据作为依据。",
    "2) 如果用户希望创作标题，请一次给出 3-5 个不同方向的候选标题，并在后面附上灵感来源或预期人群。",
    "3) 如果数据不足以回答，请明确指出并提示需要同步更多稿件。",
)


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


def format_number(value: int) -> str:
    return f"{value:,}"


def sanitize_messages(messages: Iterable[Any]) -> List[ChatMessage]:
    """Keep user/assistant turns with non-blank string content, trimmed."""
    cleaned = []
    for message in messages:
        if not isinstance(message, dict):
            continue
        role = message.get("role")
        content = message.get("content")
        if role not in ALLOWED_ROLES or not isinstance(content, str):
            continue
        content = content.strip()
        if content:
            cleaned.append(ChatMessage(role=role, content=content))
    return cleaned


def build_video_digest(videos: Sequence[VideoRecord], limit: int = 50) -> str:
    if not videos:
        return EMPTY_PROJECT_HINT

    shown = videos[:limit]
    lines = []
    for index, video in enumerate(shown, start=1):
        parts = [
            f"序号: {index}",
            f"标题: {video.title}",
            f"作者: {video.uploader}",
            f"播放: {format_number(video.play_count)}",
            f"弹幕: {format_number(video.danmaku_count)}",
            f"时长: {video.duration}",
            f"发布时间: {video.publish_time}",
        ]
        if video.video_url:
            parts.append(f"链接: {video.video_url}")
        lines.append(" · ".join(parts))

    if len(videos) > len(shown):
        lines.append(f"……其余 {len(videos) - len(shown)} 条稿件已省略。")
    return "\n".join(lines)


def build_system_prompt(
    project_id: str,
    project_name: str,
    videos: Sequence[VideoRecord],
    limit: int = 50,
) -> str:
    total_play = sum(video.play_count for video in videos)
    total_danmaku = sum(video.danmaku_count for video in videos)
    summary = [
        f"项目 ID: {project_id}",
        f"项目名称: {project_name or '未命名项目'}",
        f"稿件数量: {len(videos)}",
        f"播放总量: {format_number(total_play)}",
        f"弹幕总量: {format_number(total_danmaku)}",
    ]
    return "\n".join([
        *ASSISTANT_INSTRUCTIONS,
        "",
        "【项目概览】",
        " | ".join(summary),
        "",
        "【稿件明细（省略封面等非必要字段）】",
        build_video_digest(videos, limit=limit),
    ])
