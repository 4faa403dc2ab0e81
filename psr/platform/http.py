"""HTTP client abstraction for the code-host REST API.

This module provides:
- HttpClient: Protocol for JSON requests (injectable for tests)
- RealHttpClient: Real implementation using urllib
- MockHttpClient: Scripted implementation for testing
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from collections import deque
from dataclasses import dataclass, field
from typing import Mapping, Protocol, runtime_checkable

from psr.core.result import Err, Ok, Result
from psr.core.structured import as_str_dict, get_str

__all__ = [
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
    "RecordedRequest",
]


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors)
        message: Error message; the host's JSON ``message`` field when present
    """

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for JSON-over-HTTP operations.

    Lets tests inject scripted responses instead of making network calls.
    """

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: object | None = None,
    ) -> Result[object, HttpError]:
        """Send a request and parse the JSON response.

        Args:
            method: HTTP method (GET, POST, PUT, PATCH, DELETE)
            url: Absolute URL
            headers: Extra request headers
            body: JSON-serialisable request body, or None

        Returns:
            Ok with the decoded JSON (None for empty bodies), or Err with HttpError
        """
        ...


def _error_message(raw: bytes, fallback: str) -> str:
    try:
        obj: object = json.loads(raw.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return fallback
    data = as_str_dict(obj)
    if data is None:
        return fallback
    return get_str(data, "message") or fallback


class RealHttpClient:
    """Real HTTP client using urllib.

    Handles:
    - HTTPS with system certificates
    - JSON encoding of request bodies and decoding of responses
    - Host error payloads (``{"message": ...}``) surfaced verbatim
    - Timeout handling
    """

    def __init__(self, timeout: float = 30.0, user_agent: str = "psr/0.3.0") -> None:
        """Initialize HTTP client.

        Args:
            timeout: Request timeout in seconds
            user_agent: User-Agent header value
        """
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: object | None = None,
    ) -> Result[object, HttpError]:
        all_headers = {"User-Agent": self.user_agent, **(headers or {})}
        data: bytes | None = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            all_headers["Content-Type"] = "application/json"

        try:
            req = urllib.request.Request(url, data=data, headers=all_headers, method=method)
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                raw: bytes = response.read()
        except urllib.error.HTTPError as e:
            message = _error_message(e.read(), str(e.reason))
            return Err(HttpError(url=url, status=e.code, message=message))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except ValueError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

        if not raw.strip():
            return Ok(None)
        try:
            return Ok(json.loads(raw.decode("utf-8")))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(HttpError(url=url, status=0, message=f"JSON parse error: {e}"))


@dataclass(frozen=True, slots=True)
class RecordedRequest:
    method: str
    url: str
    headers: dict[str, str]
    body: object | None


def _empty_requests() -> list[RecordedRequest]:
    return []


@dataclass
class MockHttpClient:
    """Scripted HTTP client for testing.

    Responses are queued per (method, url). When a queue holds more than
    one response they are consumed in order; the last one repeats.

    Usage:
        http = MockHttpClient()
        http.add("GET", "https://api.github.com/repos/o/p/pulls/7", {"number": 7})
        result = http.request_json("GET", "https://api.github.com/repos/o/p/pulls/7")
    """

    requests: list[RecordedRequest] = field(default_factory=_empty_requests)
    _responses: dict[tuple[str, str], deque[object | HttpError]] = field(default_factory=dict)

    def add(self, method: str, url: str, response: object | HttpError) -> None:
        """Queue a response (JSON payload or HttpError) for method+url."""
        key = (method.upper(), url)
        self._responses.setdefault(key, deque()).append(response)

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: object | None = None,
    ) -> Result[object, HttpError]:
        method = method.upper()
        self.requests.append(RecordedRequest(method, url, dict(headers or {}), body))

        queue = self._responses.get((method, url))
        if not queue:
            return Err(HttpError(url=url, status=404, message="Not Found"))

        response = queue.popleft() if len(queue) > 1 else queue[0]
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    # Test helper methods

    def calls(self, method: str | None = None) -> list[RecordedRequest]:
        """Recorded requests, optionally filtered by method."""
        if method is None:
            return list(self.requests)
        return [r for r in self.requests if r.method == method.upper()]

    @property
    def mutating_calls(self) -> list[RecordedRequest]:
        """Requests that change remote state (anything but GET)."""
        return [r for r in self.requests if r.method != "GET"]
