"""
Latest Release Version Resolver

Resolves the latest published version of a package from a release-listing
endpoint such as GitHub's /releases/latest:
- Tries an ordered ladder of request header sets
- Retries transient failures (timeouts, connection errors, 5xx) per set
- Skips straight to the next set on client errors (403, 404, ...)
- Parses the body as JSON against a minimal schema, never by line matching
- Reports a classified failure instead of an empty version
"""

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional, Union

import requests
from pydantic import ValidationError

from .models import (
    Failed, FailureReason, HeaderSet, ReleasePayload, ReleaseQuery,
    ReleaseQueryResult, Resolved,
)
from ..utils.error_handling import VersionParseError


VERSION_PATTERN = re.compile(
    r'^\d+(?:\.\d+)*(?:[-+.]?[0-9A-Za-z]+(?:[.+-][0-9A-Za-z]+)*)?$'
)


def normalize_version(tag: str) -> str:
    """
    Turn a release tag into a bare version string.

    Line endings and surrounding whitespace are removed, then one leading
    'v'. Normalizing an already normalized version returns it unchanged.

    Raises:
        VersionParseError: If the result is empty or not version-shaped
    """
    cleaned = tag.replace('\r', '').replace('\n', '').strip()
    if cleaned.startswith('v'):
        cleaned = cleaned[1:]
    if not cleaned:
        raise VersionParseError(f"Empty version in tag {tag!r}")
    if not VERSION_PATTERN.match(cleaned):
        raise VersionParseError(f"Tag {tag!r} does not look like a version")
    return cleaned


def _first_key_wins(pairs: list) -> dict:
    # Duplicate keys keep their first value
    data = {}
    for key, value in pairs:
        data.setdefault(key, value)
    return data


def extract_version(body: Union[str, bytes]) -> str:
    """
    Extract the normalized version from a latest-release response body.

    Only the top-level tag_name field counts.

    Raises:
        VersionParseError: If the body is not a JSON object with a valid tag_name
    """
    try:
        data = json.loads(body, object_pairs_hook=_first_key_wins)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise VersionParseError(f"Response body is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise VersionParseError(
            f"Expected a JSON object, got {type(data).__name__}"
        )

    try:
        payload = ReleasePayload.model_validate(data)
    except ValidationError as e:
        raise VersionParseError(f"Response has no usable tag_name field: {e}") from e

    return normalize_version(payload.tag_name)


@dataclass
class _Attempt:
    """Outcome of one HTTP request."""
    status: Optional[int] = None
    version: Optional[str] = None
    reason: Optional[FailureReason] = None
    retryable: bool = False


class VersionResolver:
    """
    Resolves the latest version for a ReleaseQuery.

    Requests are issued one at a time. The session adds no headers
    of its own, so the baseline header set sends only what requests
    itself puts on every request.
    """

    def __init__(self,
                 session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize the resolver.

        Args:
            session: HTTP session to use (a fresh one if None)
            sleep: Function used to wait between retries
        """
        self.logger = logging.getLogger(__name__)
        self.session = session if session is not None else requests.Session()
        self._sleep = sleep

    def resolve(self, query: ReleaseQuery) -> ReleaseQueryResult:
        """
        Resolve the latest version, trying each header set in order.

        Returns:
            Resolved on the first valid version, otherwise Failed describing
            the last outcome
        """
        self.logger.info(f"Resolving latest version from {query.endpoint}")

        total_attempts = 0
        last: Optional[_Attempt] = None

        for index, header_set in enumerate(query.header_sets):
            for retry in range(query.max_retries + 1):
                if retry > 0:
                    self.logger.warning(
                        f"Retrying header set '{header_set.name}' "
                        f"({retry}/{query.max_retries}) in {query.retry_delay}s"
                    )
                    self._sleep(query.retry_delay)

                total_attempts += 1
                last = self._attempt(query, header_set)

                if last.version is not None:
                    self.logger.info(
                        f"Resolved version {last.version} with header set "
                        f"'{header_set.name}'"
                    )
                    return Resolved(
                        version=last.version,
                        attempt_index=index,
                        http_status=last.status,
                    )

                if not last.retryable:
                    break

            self.logger.warning(
                f"Header set '{header_set.name}' failed: {last.reason.value}"
            )

        self.logger.error(
            f"Giving up after {total_attempts} attempts: {last.reason.value} "
            f"(last status: {last.status})"
        )
        return Failed(
            last_status=last.status,
            attempts=total_attempts,
            reason=last.reason,
        )

    def _attempt(self, query: ReleaseQuery, header_set: HeaderSet) -> _Attempt:
        """Issue a single GET and classify the outcome."""
        try:
            response = self.session.get(
                query.endpoint,
                headers=dict(header_set.headers),
                timeout=query.timeout,
            )
        except requests.exceptions.RequestException as e:
            self.logger.debug(f"[{header_set.name}] request failed: {e}")
            return _Attempt(reason=FailureReason.NETWORK_ERROR, retryable=True)

        status = response.status_code
        self.logger.debug(f"[{header_set.name}] HTTP {status}")

        if status >= 500:
            return _Attempt(status=status, reason=FailureReason.HTTP_OTHER, retryable=True)

        if status != 200:
            if status == 403 and response.headers.get('X-RateLimit-Remaining') == '0':
                self.logger.warning(f"[{header_set.name}] API rate limit exhausted")
            return _Attempt(status=status, reason=FailureReason.from_status(status))

        try:
            version = extract_version(response.content)
        except VersionParseError as e:
            self.logger.warning(f"[{header_set.name}] {e}")
            return _Attempt(status=status, reason=FailureReason.PARSE_ERROR)

        return _Attempt(status=status, version=version)

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

    def __enter__(self) -> 'VersionResolver':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
