"""Tests for the permission coordinator."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from agentbridge.permissions import (
    DecisionSource,
    PermissionCoordinator,
    PermissionRequest,
)
from tests.utils import settle


@pytest.fixture
def prompts() -> list[PermissionRequest]:
    return []


@pytest.fixture
def on_denied() -> MagicMock:
    return MagicMock()


@pytest.fixture
def coordinator(prompts, on_denied) -> PermissionCoordinator:
    return PermissionCoordinator(prompt=prompts.append, on_denied=on_denied)


async def ask(coordinator: PermissionCoordinator, tool: str = "Bash", **kwargs):
    task = asyncio.create_task(coordinator.request_permission(tool, {"command": "ls"}, **kwargs))
    await settle()
    return task


class TestRequestResolve:
    """Correlating prompts with user decisions."""

    @pytest.mark.asyncio
    async def test_prompt_shown_and_allow_resolves(self, coordinator, prompts, on_denied) -> None:
        task = await ask(coordinator)
        assert len(prompts) == 1
        assert prompts[0].tool_name == "Bash"
        assert coordinator.pending_count == 1

        assert coordinator.resolve(prompts[0].request_id, True)
        decision = await task

        assert decision.allowed
        assert decision.source is DecisionSource.USER
        assert coordinator.pending_count == 0
        on_denied.assert_not_called()

    @pytest.mark.asyncio
    async def test_explicit_request_id_used(self, coordinator, prompts) -> None:
        task = await ask(coordinator, request_id="req-7")
        assert prompts[0].request_id == "req-7"
        coordinator.resolve("req-7", True)
        assert (await task).request_id == "req-7"

    @pytest.mark.asyncio
    async def test_deny_calls_denial_hook(self, coordinator, prompts, on_denied) -> None:
        task = await ask(coordinator)
        coordinator.resolve(prompts[0].request_id, False)
        decision = await task

        assert not decision.allowed
        on_denied.assert_called_once_with(prompts[0])

    @pytest.mark.asyncio
    async def test_duplicate_decision_ignored(self, coordinator, prompts, on_denied) -> None:
        task = await ask(coordinator)
        request_id = prompts[0].request_id
        assert coordinator.resolve(request_id, False)
        assert not coordinator.resolve(request_id, True)
        decision = await task

        assert not decision.allowed
        on_denied.assert_called_once()

    def test_unknown_request_ignored(self, coordinator) -> None:
        assert not coordinator.resolve("nope", True)

    @pytest.mark.asyncio
    async def test_concurrent_requests_resolved_independently(self, coordinator, prompts) -> None:
        first = await ask(coordinator, "Read")
        second = await ask(coordinator, "Write")
        assert coordinator.pending_count == 2

        coordinator.resolve(prompts[1].request_id, True)
        coordinator.resolve(prompts[0].request_id, False)

        assert not (await first).allowed
        assert (await second).allowed

    @pytest.mark.asyncio
    async def test_pending_requests_listed(self, coordinator, prompts) -> None:
        task = await ask(coordinator)
        assert coordinator.pending_requests() == prompts
        coordinator.resolve(prompts[0].request_id, True)
        await task

    def test_request_payload_uses_camel_case(self) -> None:
        request = PermissionRequest("r1", "Bash", {"command": "ls"})
        assert request.to_dict() == {
            "requestId": "r1",
            "toolName": "Bash",
            "inputs": {"command": "ls"},
        }


class TestDisposalAndTimeout:
    """Requests never stay blocked forever."""

    @pytest.mark.asyncio
    async def test_dispose_denies_pending(self, coordinator, on_denied) -> None:
        task = await ask(coordinator)
        coordinator.dispose()
        decision = await task

        assert not decision.allowed
        assert decision.source is DecisionSource.DISPOSED
        on_denied.assert_not_called()

    @pytest.mark.asyncio
    async def test_requests_after_dispose_denied_immediately(self, coordinator, prompts) -> None:
        coordinator.dispose()
        decision = await coordinator.request_permission("Bash", {})
        assert not decision.allowed
        assert prompts == []

    def test_dispose_idempotent(self, coordinator) -> None:
        coordinator.dispose()
        coordinator.dispose()
        assert coordinator.disposed

    @pytest.mark.asyncio
    async def test_timeout_denies(self, prompts, on_denied) -> None:
        coordinator = PermissionCoordinator(prompts.append, on_denied=on_denied, timeout=0.05)
        decision = await coordinator.request_permission("Bash", {})

        assert not decision.allowed
        assert decision.source is DecisionSource.TIMEOUT
        on_denied.assert_called_once()
        assert coordinator.pending_count == 0

    @pytest.mark.asyncio
    async def test_decision_before_timeout_wins(self, prompts) -> None:
        coordinator = PermissionCoordinator(prompts.append, timeout=5.0)
        task = await ask(coordinator)
        coordinator.resolve(prompts[0].request_id, True)
        assert (await task).allowed

    @pytest.mark.asyncio
    async def test_failing_prompt_denies(self) -> None:
        def broken_prompt(request: PermissionRequest) -> None:
            raise RuntimeError("surface gone")

        coordinator = PermissionCoordinator(broken_prompt)
        decision = await coordinator.request_permission("Bash", {})
        assert not decision.allowed

    @pytest.mark.asyncio
    async def test_cancelled_caller_leaves_request_pending(
        self, coordinator, prompts, on_denied
    ) -> None:
        task = await ask(coordinator)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert coordinator.pending_count == 1

        assert coordinator.resolve(prompts[0].request_id, False)
        await settle()
        on_denied.assert_called_once_with(prompts[0])
        assert coordinator.pending_count == 0

    @pytest.mark.asyncio
    async def test_cancelled_caller_still_times_out(self, prompts, on_denied) -> None:
        coordinator = PermissionCoordinator(prompts.append, on_denied=on_denied, timeout=0.05)
        task = await ask(coordinator)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        await asyncio.sleep(0.1)
        on_denied.assert_called_once_with(prompts[0])
        assert coordinator.pending_count == 0
