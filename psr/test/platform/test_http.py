"""Tests for platform/http.py - HTTP client abstraction."""

from __future__ import annotations

import pytest

from psr.core.result import Err, Ok
from psr.platform.http import HttpClient, HttpError, MockHttpClient, RealHttpClient


class TestHttpError:
    def test_str_with_status(self) -> None:
        error = HttpError(url="https://api.github.com/x", status=422, message="Validation Failed")
        assert str(error) == "HTTP 422: Validation Failed (https://api.github.com/x)"

    def test_str_without_status(self) -> None:
        error = HttpError(url="https://api.github.com", status=0, message="Timeout")
        assert str(error) == "Timeout (https://api.github.com)"

    def test_is_frozen(self) -> None:
        error = HttpError(url="u", status=404, message="Not Found")
        with pytest.raises(AttributeError):
            error.status = 500  # type: ignore[misc]


class TestMockHttpClient:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(MockHttpClient(), HttpClient)
        assert isinstance(RealHttpClient(), HttpClient)

    def test_unknown_url_is_404(self) -> None:
        http = MockHttpClient()
        result = http.request_json("GET", "https://api.github.com/nothing")
        assert isinstance(result, Err)
        assert result.error.status == 404

    def test_queued_responses_then_last_repeats(self) -> None:
        http = MockHttpClient()
        url = "https://api.github.com/repos/o/p/commits/dev/status"
        http.add("GET", url, {"state": "pending"})
        http.add("GET", url, {"state": "success"})

        states = []
        for _ in range(3):
            result = http.request_json("GET", url)
            assert isinstance(result, Ok)
            states.append(result.value)
        assert states == [{"state": "pending"}, {"state": "success"}, {"state": "success"}]

    def test_error_response(self) -> None:
        http = MockHttpClient()
        http.add("PUT", "u", HttpError(url="u", status=405, message="Not mergeable"))
        result = http.request_json("put", "u", body={"merge_method": "merge"})
        assert isinstance(result, Err)
        assert result.error.status == 405

    def test_records_requests(self) -> None:
        http = MockHttpClient()
        http.add("POST", "u", {"number": 1})
        http.request_json("GET", "v", headers={"Accept": "x"})
        http.request_json("POST", "u", body={"title": "t"})

        assert [r.method for r in http.calls()] == ["GET", "POST"]
        assert http.calls("GET")[0].headers == {"Accept": "x"}
        assert [r.body for r in http.mutating_calls] == [{"title": "t"}]
