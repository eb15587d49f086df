import asyncio

import pytest

from bilidash.services.chat.chat_service import ChatService, ChatUnavailableError
from bilidash.services.chat.prompt import (
    EMPTY_PROJECT_HINT,
    ChatMessage,
    build_system_prompt,
    build_video_digest,
    sanitize_messages,
)
from bilidash.services.records.normalizer import VideoRecord


def make_video(index, play_count=1000, video_url=None):
    return VideoRecord(
        key=f"v{index}",
        title=f"标题{index}",
        uploader="作者",
        play_count=play_count,
        duration="3:45",
        publish_time="2024-01-02 08:00:00",
        danmaku_count=1234,
        video_url=video_url,
    )


def test_digest_line_format():
    digest = build_video_digest([make_video(1, 12345, "https://b23.tv/x")])
    assert digest == (
        "序号: 1 · 标题: 标题1 · 作者: 作者 · 播放: 12,345 · 弹幕: 1,234 · "
        "时长: 3:45 · 发布时间: 2024-01-02 08:00:00 · 链接: https://b23.tv/x"
    )


def test_digest_truncates_with_omission_line():
    lines = build_video_digest([make_video(i) for i in range(5)], limit=3).split("\n")
    assert len(lines) == 4
    assert lines[-1] == "……其余 2 条稿件已省略。"
    assert "链接" not in lines[0]


def test_digest_for_empty_project():
    assert build_video_digest([]) == EMPTY_PROJECT_HINT


def test_system_prompt_totals_use_all_records():
    videos = [make_video(i, play_count=1000) for i in range(60)]

    prompt = build_system_prompt("p1", "", videos, limit=50)

    assert "项目 ID: p1 | 项目名称: 未命名项目 | 稿件数量: 60 | 播放总量: 60,000 | 弹幕总量: 74,040" in prompt
    assert "序号: 50 ·" in prompt
    assert "序号: 51 ·" not in prompt
    assert "……其余 10 条稿件已省略。" in prompt
    assert prompt.startswith("你是一名资深的 Bilibili 数据分析与热点标题共创顾问")


def test_sanitize_messages():
    raw = [
        {"role": "user", "content": "  你好  "},
        {"role": "system", "content": "ignore me"},
        {"role": "assistant", "content": "   "},
        {"role": "assistant", "content": 5},
        "junk",
        {"role": "assistant", "content": "收到"},
    ]
    assert sanitize_messages(raw) == [
        ChatMessage(role="user", content="你好"),
        ChatMessage(role="assistant", content="收到"),
    ]


async def _collect(service, prompt, messages):
    fragments = await service.stream_reply(prompt, messages)
    return [fragment async for fragment in fragments]


def test_stream_reply_yields_non_empty_fragments_and_closes_stream(make_chat_client):
    client = make_chat_client()
    service = ChatService(client, model="deepseek-chat", temperature=0.2)

    fragments = asyncio.run(_collect(service, "system", [ChatMessage("user", "hi")]))

    assert fragments == ["你好", "世界"]
    [call] = client.completions.calls
    assert call["stream"] is True
    assert call["model"] == "deepseek-chat"
    assert call["temperature"] == 0.2
    assert call["messages"] == [
        {"role": "system", "content": "system"},
        {"role": "user", "content": "hi"},
    ]
    assert client.completions.streams[0].closed


def test_stopping_early_closes_upstream_stream(make_chat_client):
    client = make_chat_client(fragments=("a", "b", "c"))
    service = ChatService(client)

    async def take_one():
        fragments = await service.stream_reply("system", [ChatMessage("user", "hi")])
        first = await fragments.__anext__()
        await fragments.aclose()
        return first

    assert asyncio.run(take_one()) == "a"
    assert client.completions.streams[0].closed


def test_stream_reply_without_client():
    service = ChatService(None)
    assert not service.available
    with pytest.raises(ChatUnavailableError):
        asyncio.run(service.stream_reply("system", [ChatMessage("user", "hi")]))
