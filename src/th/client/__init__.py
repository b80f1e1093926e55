"""th client - credentials, Copilot tokens and streamed completions."""

from th.client.api_client import CopilotClient, Message
from th.client.auth import AuthState, DeviceSession, GitHubDeviceAuth, PollResult, PollStatus
from th.client.decoder import CommandProposal, decode_stream
from th.client.errors import CompletionError, ExecutionError, NetworkError, ProtocolError, ThError
from th.client.store import CredentialRecord, FileCredentialStore, MemoryCredentialStore
from th.client.tokens import TokenExchange, TokenResult, TokenStatus

__all__ = [
    "AuthState",
    "CommandProposal",
    "CompletionError",
    "CopilotClient",
    "CredentialRecord",
    "DeviceSession",
    "ExecutionError",
    "FileCredentialStore",
    "GitHubDeviceAuth",
    "MemoryCredentialStore",
    "Message",
    "NetworkError",
    "PollResult",
    "PollStatus",
    "ProtocolError",
    "ThError",
    "TokenExchange",
    "TokenResult",
    "TokenStatus",
    "decode_stream",
]
