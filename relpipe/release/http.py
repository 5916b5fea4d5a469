"""HTTP transport for the release service API.

This module provides:
- HttpTransport: Protocol for one HTTP exchange (injectable for tests)
- UrllibTransport: Real implementation using urllib
- MockTransport: Scripted implementation for testing
"""

from __future__ import annotations

import ssl
import urllib.error
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass
from typing import BinaryIO, Protocol, runtime_checkable

from relpipe.core.result import Err, Ok, Result

__all__ = [
    "HttpError",
    "HttpResponse",
    "HttpTransport",
    "MockTransport",
    "RecordedCall",
    "UrllibTransport",
]

type Body = bytes | BinaryIO | None


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """A response that reached us with a success (2xx) status."""

    status: int
    body: bytes = b""


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 when no response was received)
        message: Human-readable error message
        body: Response body, if any (the service's error document)
    """

    url: str
    status: int
    message: str
    body: bytes = b""

    @property
    def has_response(self) -> bool:
        return self.status != 0

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@runtime_checkable
class HttpTransport(Protocol):
    """Protocol for a single HTTP request/response exchange."""

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: Body = None,
        timeout: float,
    ) -> Result[HttpResponse, HttpError]:
        """Perform one request.

        Returns:
            Ok with the response for 2xx statuses, or Err with HttpError
        """
        ...


class UrllibTransport:
    """Real transport using urllib.

    Handles:
    - HTTPS with system certificates
    - Streaming file bodies (callers set Content-Length)
    - Timeout handling
    """

    def __init__(self, user_agent: str = "relpipe") -> None:
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: Body = None,
        timeout: float,
    ) -> Result[HttpResponse, HttpError]:
        if timeout <= 0:
            return Err(HttpError(url=url, status=0, message="Request timed out"))

        all_headers = {"User-Agent": self.user_agent, **headers}
        try:
            req = urllib.request.Request(url, data=body, headers=all_headers, method=method)
            with urllib.request.urlopen(
                req,
                timeout=timeout,
                context=self._ssl_context,
            ) as response:
                return Ok(HttpResponse(status=response.status, body=response.read()))
        except urllib.error.HTTPError as e:
            try:
                payload = e.read()
            except OSError:
                payload = b""
            return Err(HttpError(url=url, status=e.code, message=str(e.reason), body=payload))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except ValueError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))


@dataclass(frozen=True, slots=True)
class RecordedCall:
    method: str
    url: str
    headers: dict[str, str]
    body: bytes


class MockTransport:
    """Scripted transport for testing.

    Responses are returned in the order they were queued; an exhausted queue
    answers with a 500 error. File bodies are read so tests can inspect what
    would have been sent.

    Usage:
        transport = MockTransport()
        transport.queue(HttpResponse(status=201, body=b'{"id": 7}'))
        client = GitHubClient(token="t", transport=transport)
    """

    def __init__(self, *responses: HttpResponse | HttpError) -> None:
        self._responses: list[HttpResponse | HttpError] = list(responses)
        self.calls: list[RecordedCall] = []

    def queue(self, *responses: HttpResponse | HttpError) -> None:
        self._responses.extend(responses)

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: Body = None,
        timeout: float,
    ) -> Result[HttpResponse, HttpError]:
        if body is None:
            data = b""
        elif isinstance(body, bytes):
            data = body
        else:
            data = body.read()
        self.calls.append(RecordedCall(method=method, url=url, headers=dict(headers), body=data))

        if not self._responses:
            return Err(HttpError(url=url, status=500, message="No response queued (mock)"))

        response = self._responses.pop(0)
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

