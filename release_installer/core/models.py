"""
Data model for latest-release resolution.

A ReleaseQuery describes what to ask and how hard to try; the resolver
answers with either a Resolved or a Failed result. The pydantic
ReleasePayload is the minimal schema a release body must satisfy.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict


GITHUB_API_URL = "https://api.github.com"
GITHUB_ACCEPT = "application/vnd.github.v3+json"
DEFAULT_USER_AGENT = "release-installer/1.0"


@dataclass(frozen=True)
class HeaderSet:
    """
    One combination of request headers to try.

    Attributes:
        name: Short label used in log messages
        headers: Header name to value mapping
    """
    name: str
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # Read-only copy so a shared dict can't change a frozen query
        object.__setattr__(self, 'headers', MappingProxyType(dict(self.headers)))


@dataclass(frozen=True)
class ReleaseQuery:
    """
    Immutable description of a latest-release lookup.

    Attributes:
        endpoint: Release-listing URL
        header_sets: Candidates to try in order, baseline first
        max_retries: Extra attempts per candidate on transient failures
        timeout: Per-request timeout in seconds
        retry_delay: Pause between retries in seconds
    """
    endpoint: str
    header_sets: Tuple[HeaderSet, ...]
    max_retries: int = 2
    timeout: float = 10.0
    retry_delay: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, 'header_sets', tuple(self.header_sets))
        if not self.header_sets:
            raise ValueError("ReleaseQuery needs at least one header set")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

    @classmethod
    def for_github(cls,
                   owner: str,
                   repo: str,
                   api_base_url: str = GITHUB_API_URL,
                   user_agent: str = DEFAULT_USER_AGENT,
                   accept: str = GITHUB_ACCEPT,
                   github_token: Optional[str] = None,
                   max_retries: int = 2,
                   timeout: float = 10.0,
                   retry_delay: float = 1.0) -> 'ReleaseQuery':
        """
        Build a query for GitHub's latest-release endpoint.

        Candidates go from no custom headers, to a User-Agent, to a
        User-Agent plus the v3 Accept header, and finally an authenticated
        request when a token is given.
        """
        endpoint = f"{api_base_url.rstrip('/')}/repos/{owner}/{repo}/releases/latest"
        with_accept = {'User-Agent': user_agent, 'Accept': accept}
        header_sets = [
            HeaderSet('baseline'),
            HeaderSet('user-agent', {'User-Agent': user_agent}),
            HeaderSet('user-agent+accept', with_accept),
        ]
        if github_token:
            header_sets.append(HeaderSet(
                'authenticated',
                {**with_accept, 'Authorization': f'token {github_token}'},
            ))
        return cls(
            endpoint=endpoint,
            header_sets=tuple(header_sets),
            max_retries=max_retries,
            timeout=timeout,
            retry_delay=retry_delay,
        )


class FailureReason(Enum):
    """Why a resolution gave up."""

    HTTP_FORBIDDEN = 'HttpForbidden'
    HTTP_NOT_FOUND = 'HttpNotFound'
    HTTP_OTHER = 'HttpOther'
    NETWORK_ERROR = 'NetworkError'
    PARSE_ERROR = 'ParseError'

    @classmethod
    def from_status(cls, status: int) -> 'FailureReason':
        if status == 403:
            return cls.HTTP_FORBIDDEN
        if status == 404:
            return cls.HTTP_NOT_FOUND
        return cls.HTTP_OTHER


@dataclass(frozen=True)
class Resolved:
    """Successful resolution."""
    version: str
    attempt_index: int
    http_status: int = 200


@dataclass(frozen=True)
class Failed:
    """
    Resolution that exhausted every header set.

    Attributes:
        last_status: HTTP status of the last response, None if none arrived
        attempts: Total number of requests issued, retries included
        reason: Classification of the last outcome
    """
    last_status: Optional[int]
    attempts: int
    reason: FailureReason


ReleaseQueryResult = Union[Resolved, Failed]


class ReleasePayload(BaseModel):
    """
    Top-level fields of a latest-release response.

    Only tag_name is required; nested objects are never searched for it.
    """

    model_config = ConfigDict(extra='ignore')

    tag_name: str
    name: Optional[str] = None
    prerelease: bool = False
