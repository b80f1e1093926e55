"""Tests for the Copilot completion client."""

import json

import httpx
import pytest

from th.client.api_client import CopilotClient, Message
from th.client.errors import CompletionError, NetworkError
from th.context_collector import ProjectContext, build_prompt
from th.core.config import Settings
from tests.helpers import Recorder, sse_body

MESSAGES = [Message(role="system", content="plan"), Message(role="user", content="Task: list files")]


class TestCopilotClient:
    """Tests for CopilotClient.request_command()."""

    @pytest.mark.asyncio
    async def test_streams_and_decodes_proposal(self) -> None:
        body = sse_body('{"command": "ls', ' -la", "explanation": "list all files"}')
        recorder = Recorder(
            lambda r: httpx.Response(200, content=body.encode(), headers={"Content-Type": "text/event-stream"})
        )
        client = CopilotClient(Settings(model="gpt-4o", max_tokens=180), transport=recorder.transport())

        proposal = await client.request_command(MESSAGES, "tid=abc")

        assert proposal.command == "ls -la"
        assert proposal.explanation == "list all files"

        request = recorder.requests[0]
        assert str(request.url) == "https://api.githubcopilot.com/chat/completions"
        assert request.headers["Authorization"] == "Bearer tid=abc"
        assert request.headers["Editor-Version"] == "vscode/1.99.3"
        payload = json.loads(request.content)
        assert payload["stream"] is True
        assert payload["model"] == "gpt-4o"
        assert payload["max_tokens"] == 180
        assert payload["messages"] == [m.model_dump() for m in MESSAGES]

    @pytest.mark.asyncio
    async def test_custom_base_url(self) -> None:
        recorder = Recorder(lambda r: httpx.Response(200, content=sse_body('{"command": "pwd"}').encode()))
        client = CopilotClient(base_url="https://api.individual.githubcopilot.com/", transport=recorder.transport())

        await client.request_command(MESSAGES, "t")

        assert str(recorder.requests[0].url) == "https://api.individual.githubcopilot.com/chat/completions"

    @pytest.mark.asyncio
    async def test_declined_command_is_none(self) -> None:
        body = sse_body('{"command": "", "explanation": "cannot do that safely"}')
        client = CopilotClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, content=body.encode())))

        assert await client.request_command(MESSAGES, "t") is None

    @pytest.mark.asyncio
    async def test_error_status_raises_completion_error(self) -> None:
        client = CopilotClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(401, text="unauthorized: token expired"))
        )

        with pytest.raises(CompletionError) as exc_info:
            await client.request_command(MESSAGES, "t")

        assert exc_info.value.status_code == 401
        assert "401" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_connection_failure_raises_network_error(self) -> None:
        def offline(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        client = CopilotClient(transport=httpx.MockTransport(offline))

        with pytest.raises(NetworkError):
            await client.request_command(MESSAGES, "t")


class TestBuildPrompt:
    """Tests for the planner prompt."""

    def test_system_and_user_messages(self) -> None:
        messages = build_prompt("list files", ProjectContext(cwd="/tmp/project"))

        assert [m.role for m in messages] == ["system", "user"]
        assert '"command"' in messages[0].content
        assert messages[1].content == "Task: list files\n\nContext:\ncurrent working directory: /tmp/project"
