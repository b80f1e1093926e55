"""
Context Collector - gathers local context and builds the planner prompt.

The model only sees the task and the working directory; it never gets to
run tools, so everything it needs has to be in these two messages.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

from th.client.api_client import Message

SYSTEM_PROMPT = (
    "You are a terminal command planner. Given a user request and project context, "
    'respond with ONLY a JSON object containing fields: "command", "explanation", '
    'and optionally "summary". Do not include any other text, explanations, or formatting. '
    'The "command" must be a single shell command. '
    'Example: {"command": "ls", "explanation": "Lists files in the current directory"}. '
    'Return "summary" only when the command involves multiple steps, non-trivial options, '
    "or could surprise the user; otherwise omit it. "
    "You must always propose a best-effort command even if information is missing - "
    "do not ask follow-up questions. If critical context is unavailable, make a reasonable "
    'assumption and mention it in "explanation". You cannot execute additional tools yourself; '
    "suggest only the command a user should run. If a safe command truly cannot be produced, "
    'return JSON with an empty "command" and a short explanation.'
)


@dataclass
class ProjectContext:
    """Local context sent along with the task."""
    cwd: str

    def to_prompt(self) -> str:
        return f"current working directory: {self.cwd}"


def gather_context(cwd: Optional[str] = None) -> ProjectContext:
    """Collect context for the current invocation."""
    return ProjectContext(cwd=cwd or os.getcwd())


def build_prompt(task: str, context: ProjectContext) -> List[Message]:
    """Build the system + user messages for a task."""
    return [
        Message(role="system", content=SYSTEM_PROMPT),
        Message(role="user", content=f"Task: {task}\n\nContext:\n{context.to_prompt()}"),
    ]
