"""HTTP client abstraction for the deployment server API.

This module provides:
- HttpClient: Protocol for JSON GET requests (injectable for tests)
- RealHttpClient: Real implementation using urllib
- MockHttpClient: Mock implementation for testing
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, cast, runtime_checkable

from relplan import __version__
from relplan.core.result import Err, Ok, Result
from relplan.core.structured import as_str_dict

__all__ = [
    "API_KEY_HEADER",
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
    "build_url",
]

API_KEY_HEADER = "X-Api-Key"

type QueryParams = Mapping[str, str | int]


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors)
        message: Human-readable error message
    """

    url: str
    status: int
    message: str

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


def build_url(url: str, params: QueryParams | None = None) -> str:
    """Append query parameters in mapping order."""
    if not params:
        return url
    query = urllib.parse.urlencode([(k, str(v)) for k, v in params.items()])
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}{query}"


@runtime_checkable
class HttpClient(Protocol):
    def get_json(self, url: str, params: QueryParams | None = None) -> Result[dict[str, Any], HttpError]:
        """Fetch URL and parse the body as a JSON object.

        Args:
            url: URL to fetch
            params: Query parameters appended to the URL

        Returns:
            Ok with parsed JSON dict, or Err with HttpError
        """
        ...


class RealHttpClient:
    """Real HTTP client using urllib.

    Sends the API key header on every request when one is configured.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        timeout: float = 30.0,
        user_agent: str = f"relplan/{__version__}",
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._api_key = api_key
        self._ssl_context = ssl.create_default_context()

    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": self.user_agent, "Accept": "application/json"}
        if self._api_key:
            headers[API_KEY_HEADER] = self._api_key
        return headers

    def _request(self, url: str) -> Result[bytes, HttpError]:
        try:
            req = urllib.request.Request(url, headers=self._headers())
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                return Ok(response.read())
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except ValueError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

    def get_json(self, url: str, params: QueryParams | None = None) -> Result[dict[str, Any], HttpError]:
        full_url = build_url(url, params)
        result = self._request(full_url)
        if isinstance(result, Err):
            return result

        try:
            data_obj: object = json.loads(result.value.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(HttpError(url=full_url, status=0, message=f"JSON parse error: {e}"))

        data = as_str_dict(data_obj)
        if data is None:
            return Err(HttpError(url=full_url, status=0, message="Expected JSON object"))
        return Ok(cast(dict[str, Any], data))


class MockHttpClient:
    """Mock HTTP client for testing.

    Responses are keyed by the full URL, query string included.

    Usage:
        client = MockHttpClient()
        client.set_json("https://deploy.example.com/api/feeds/F", {"Id": "F", "Name": "Main"})
        result = client.get_json("https://deploy.example.com/api/feeds/F")
    """

    def __init__(self) -> None:
        self._json_responses: dict[str, dict[str, Any] | HttpError] = {}
        self.calls: list[str] = []

    def set_json(
        self,
        url: str,
        response: dict[str, Any] | HttpError,
        params: QueryParams | None = None,
    ) -> None:
        self._json_responses[build_url(url, params)] = response

    def get_json(self, url: str, params: QueryParams | None = None) -> Result[dict[str, Any], HttpError]:
        full_url = build_url(url, params)
        self.calls.append(full_url)

        if full_url not in self._json_responses:
            return Err(HttpError(url=full_url, status=404, message="Not found (mock)"))

        response = self._json_responses[full_url]
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)
