"""HTTP client used by drivers to talk to platform APIs."""
import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Protocol
import httpx
import config
from platforms.exceptions import UpstreamFetchFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    """Transport independent response."""
    status_code: int
    content: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Decode the body; an empty or invalid body decodes to {}."""
        if not self.content:
            return {}
        try:
            return json.loads(self.content)
        except ValueError:
            return {}


class HttpClient(Protocol):
    """Interface drivers call for every outbound request."""

    def get(self, url: str, query: Optional[Dict[str, Any]] = None) -> HttpResponse: ...

    def post(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[Dict[str, Any]] = None
    ) -> HttpResponse: ...


class HttpxClient:
    """
    HttpClient backed by httpx.

    No retries here; a failed request raises UpstreamFetchFailed and the
    caller decides how to degrade.
    """

    def __init__(self, timeout: Optional[float] = None, client: Optional[httpx.Client] = None):
        self.timeout = timeout if timeout is not None else config.HTTP_TIMEOUT
        self._client = client

    def _request(self, method: str, url: str, **kwargs) -> HttpResponse:
        try:
            if self._client is not None:
                response = self._client.request(method, url, **kwargs)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise UpstreamFetchFailed(str(e)) from e

        return HttpResponse(
            status_code=response.status_code,
            content=response.content,
            headers=dict(response.headers)
        )

    def get(self, url: str, query: Optional[Dict[str, Any]] = None) -> HttpResponse:
        return self._request("GET", url, params=query or None)

    def post(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[Dict[str, Any]] = None
    ) -> HttpResponse:
        return self._request("POST", url, headers=headers or None, json=body)
