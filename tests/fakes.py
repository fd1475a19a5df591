"""
Script: tests/fakes.py
What: Scripted stand-ins for `requests.Session`.
Doing: Replays a fixed list of responses or exceptions and records every call.
Why: Lets resolver, downloader and diagnostics tests run without network access.
"""

from __future__ import annotations

import json

import requests
from requests.structures import CaseInsensitiveDict


def make_response(status: int, body=b"", headers: dict | None = None) -> requests.Response:
    """Build a real `requests.Response` with an in-memory body."""
    if not isinstance(body, (bytes, str)):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode("utf-8")

    response = requests.Response()
    response.status_code = status
    response.reason = {200: "OK", 403: "Forbidden", 404: "Not Found"}.get(status, "")
    response._content = body
    # Marks the body as already read so iter_content() replays `_content`.
    response._content_consumed = True
    response.headers = CaseInsensitiveDict(headers or {})
    return response


class FakeSession:
    """Returns (or raises) scripted outcomes in order, one per `get` call."""

    def __init__(self, outcomes: list) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[tuple[str, dict]] = []
        self.headers = CaseInsensitiveDict()
        self.closed = False

    def get(self, url: str, **kwargs):
        self.calls.append((url, kwargs))
        if not self.outcomes:
            raise AssertionError(f"Unexpected request to {url}")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True
