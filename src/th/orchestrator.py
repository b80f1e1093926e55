"""
th Orchestrator - runs one task from description to executed command.

Flow:
1. make sure a Copilot token is available, logging in through the GitHub
   device flow if not
2. build the planner prompt and request a completion (bounded by a timeout)
3. show the proposal and ask for approval
4. run the command and hand back its exit code
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

from th.client.api_client import CopilotClient
from th.client.auth import AuthState, DeviceSession, GitHubDeviceAuth, PollResult, PollStatus
from th.client.decoder import CommandProposal
from th.client.errors import ThError
from th.client.store import CredentialStore, FileCredentialStore
from th.client.tokens import TokenExchange
from th.context_collector import build_prompt, gather_context
from th.core.config import Settings
from th.executor.shell import execute_command
from th.ui.console import ThConsole

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Executor = Callable[[str, Optional[Path]], Awaitable[int]]

EXIT_OK = 0
EXIT_FAILURE = 1


async def wait_for_authorization(
    auth: GitHubDeviceAuth,
    session: DeviceSession,
    sleep: Sleep = asyncio.sleep,
) -> PollResult:
    """
    Poll GitHub until the device code is approved, rejected or expires.

    Sleeps ``session.interval`` seconds before every poll; slow-down
    responses widen that interval. The code's ``expires_in`` is enforced
    locally so an abandoned login does not poll forever.
    """
    while True:
        if session.expired:
            session.state = AuthState.EXPIRED
            return PollResult(PollStatus.EXPIRED, error="expired_token",
                              description="device code expired before authorization")

        await sleep(max(session.interval, 1))
        result = await auth.poll(session)
        if result.terminal:
            return result


class CommandAssistant:
    """Drives a single th invocation."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        ui: Optional[ThConsole] = None,
        store: Optional[CredentialStore] = None,
        auth: Optional[GitHubDeviceAuth] = None,
        tokens: Optional[TokenExchange] = None,
        client: Optional[CopilotClient] = None,
        executor: Executor = execute_command,
        sleep: Sleep = asyncio.sleep,
    ):
        self.settings = settings or Settings()
        self.ui = ui or ThConsole()
        self.store = store or FileCredentialStore()
        self.auth = auth or GitHubDeviceAuth(self.store)
        self.tokens = tokens or TokenExchange(self.store)
        self.client = client or CopilotClient(self.settings)
        self.executor = executor
        self.sleep = sleep

    async def login(self) -> PollResult:
        """Run the device flow once, start to finish."""
        session = await self.auth.authorize()
        self.ui.show_device_code(session.verification_uri, session.user_code)
        return await wait_for_authorization(self.auth, session, sleep=self.sleep)

    async def ensure_token(self) -> Optional[str]:
        """Get a Copilot token, logging in first if none is usable.

        Returns None (after reporting why) when login did not succeed.
        """
        result = await self.tokens.resolve()
        if result.ok:
            self.client.base_url = result.api_base.rstrip("/")
            return result.token

        logger.info(f"No usable Copilot token ({result.status.value})")
        self.ui.print_info("No valid Copilot token found. Initiating login...")

        outcome = await self.login()
        if outcome.status != PollStatus.COMPLETE:
            self.ui.print_error(f"Login failed: {outcome.reason or outcome.status.value}")
            return None
        self.ui.print_success("Login successful!")

        result = await self.tokens.resolve()
        if not result.ok:
            self.ui.print_error(
                f"Could not get a Copilot token after login ({result.status.value}). "
                "Check that your GitHub account has Copilot access."
            )
            return None
        self.client.base_url = result.api_base.rstrip("/")
        return result.token

    async def propose(self, task: str, token: str) -> Optional[CommandProposal]:
        """Ask Copilot for a command. Raises asyncio.TimeoutError past the deadline."""
        messages = build_prompt(task, gather_context())
        with self.ui.thinking():
            return await asyncio.wait_for(
                self.client.request_command(messages, token),
                timeout=self.settings.timeout,
            )

    async def run(self, task: str) -> int:
        """Run a task. Returns the process exit code."""
        task = task.strip()
        if not task:
            self.ui.print_error("Usage: th <task description>")
            return EXIT_FAILURE

        try:
            token = await self.ensure_token()
            if token is None:
                return EXIT_FAILURE
            proposal = await self.propose(task, token)
        except asyncio.TimeoutError:
            self.ui.print_error("API request timed out.")
            return EXIT_FAILURE
        except ThError as e:
            self.ui.print_error(str(e))
            return EXIT_FAILURE

        if proposal is None:
            self.ui.print_error("No command proposal returned. Please try rephrasing the request.")
            return EXIT_FAILURE

        self.ui.render_proposal(proposal)
        if not self.ui.confirm_execution():
            self.ui.print_warning("Command execution cancelled.")
            return EXIT_OK

        try:
            exit_code = await self.executor(proposal.command, None)
        except ThError as e:
            self.ui.print_error(f"Command execution failed: {e}")
            return EXIT_FAILURE

        if exit_code < 0:
            # killed by a signal
            exit_code = 128 - exit_code
        if exit_code != 0:
            self.ui.print_error(f"Command exited with code {exit_code}")
        return exit_code
