"""Tests for stored conversation loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from agentbridge.errors import HistoryLoadError
from agentbridge.history import (
    HistoryLoader,
    entry_to_message,
    get_claude_dir,
    get_session_jsonl_path,
    project_path_to_slug,
    read_transcript,
)
from agentbridge.session import MessageType


def write_lines(path: Path, lines: list[str]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


class TestPaths:
    def test_slug(self) -> None:
        assert project_path_to_slug("/Users/foo/bar") == "-Users-foo-bar"
        assert project_path_to_slug("C:\\work\\proj") == "C--work-proj"
        assert project_path_to_slug("/home/u/my_proj.v2") == "-home-u-my-proj-v2"
        assert project_path_to_slug("/srv/app name") == "-srv-app-name"

    def test_claude_dir_from_env(self, tmp_path: Path) -> None:
        assert get_claude_dir() == tmp_path / "claude"

    def test_session_path(self, tmp_path: Path) -> None:
        path = get_session_jsonl_path("/a/b", "sess")
        assert path == tmp_path / "claude" / "projects" / "-a-b" / "sess.jsonl"


class TestEntryToMessage:
    def test_user_text(self) -> None:
        message = entry_to_message(
            {"type": "user", "message": {"content": "hi"}, "timestamp": "2026-01-02T03:04:05Z"}
        )
        assert message.type is MessageType.USER
        assert message.content == "hi"
        assert message.timestamp == 1767323045.0

    def test_assistant_blocks(self) -> None:
        message = entry_to_message(
            {
                "type": "assistant",
                "message": {
                    "content": [
                        {"type": "thinking", "thinking": "hmm"},
                        {"type": "text", "text": "answer"},
                        {"type": "tool_use", "name": "Bash"},
                    ]
                },
            }
        )
        assert message.type is MessageType.ASSISTANT
        assert message.content == "answer"

    def test_tool_result(self) -> None:
        message = entry_to_message(
            {
                "type": "user",
                "message": {
                    "content": [
                        {"type": "tool_result", "content": [{"type": "text", "text": "ok"}]}
                    ]
                },
            }
        )
        assert message.type is MessageType.TOOL
        assert message.content == "ok"

    @pytest.mark.parametrize(
        "entry",
        [
            {"type": "summary", "summary": "x"},
            {"type": "user", "isMeta": True, "message": {"content": "meta"}},
            {"type": "assistant"},
        ],
    )
    def test_bookkeeping_skipped(self, entry) -> None:
        assert entry_to_message(entry) is None


class TestReadTranscript:
    def test_corrupt_lines_skipped(self, tmp_path: Path) -> None:
        path = write_lines(
            tmp_path / "t.jsonl",
            [
                json.dumps({"type": "user", "message": {"content": "one"}}),
                "{not json",
                "",
                json.dumps([1, 2]),
                json.dumps({"type": "assistant", "message": {"content": "two"}}),
            ],
        )
        assert [m.content for m in read_transcript(path)] == ["one", "two"]


class TestHistoryLoader:
    @pytest.mark.asyncio
    async def test_load(self, tmp_path: Path) -> None:
        write_lines(
            get_session_jsonl_path("/proj", "s1"),
            [json.dumps({"type": "user", "message": {"content": "hello"}})],
        )
        messages = await HistoryLoader().load("s1", "/proj")
        assert [m.content for m in messages] == ["hello"]

    @pytest.mark.asyncio
    async def test_missing_session(self) -> None:
        with pytest.raises(HistoryLoadError):
            await HistoryLoader().load("nope", "/proj")

    @pytest.mark.asyncio
    async def test_list_sessions(self) -> None:
        write_lines(
            get_session_jsonl_path("/proj", "s1"),
            [json.dumps({"type": "user", "message": {"content": "  first   question  "}})],
        )
        write_lines(get_session_jsonl_path("/proj", "s2"), ["{}"])

        summaries = await HistoryLoader().list_sessions("/proj")
        by_id = {s.session_id: s for s in summaries}
        assert by_id["s1"].title == "first question"
        assert by_id["s1"].message_count == 1
        assert by_id["s2"].title == "(empty)"
        assert by_id["s1"].to_dict()["sessionId"] == "s1"

    @pytest.mark.asyncio
    async def test_list_unknown_project(self) -> None:
        assert await HistoryLoader().list_sessions("/nowhere") == []
