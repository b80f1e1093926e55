"""Test helpers: canned event streams and a recording mock transport."""

import json
from typing import Callable, List

import httpx


def sse_event(content: str) -> str:
    """One completion chunk carrying ``content`` as its delta."""
    return "data: " + json.dumps({"choices": [{"index": 0, "delta": {"content": content}}]})


def sse_body(*pieces: str, done: bool = True) -> str:
    """A full event stream delivering ``pieces`` in order."""
    lines = [sse_event(p) for p in pieces]
    if done:
        lines.append("data: [DONE]")
    return "\n\n".join(lines) + "\n\n"


class Recorder:
    """MockTransport handler that records requests and delegates to a router."""

    def __init__(self, router: Callable[[httpx.Request], httpx.Response]):
        self.router = router
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.router(request)

    @property
    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)
