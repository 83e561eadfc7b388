"""
urinorm.transport — Single HTTP exchange: request/response types and a requests-based sender.

Redirects are never followed here; the resolver inspects every 3xx itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

import requests
from requests.structures import CaseInsensitiveDict

from urinorm.settings import DEFAULT_HEADERS, REQUEST_TIMEOUT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpRequest:
    method: str
    url: str
    headers: dict = field(default_factory=dict)


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    body: bytes = b""

    def __post_init__(self):
        if not isinstance(self.headers, CaseInsensitiveDict):
            object.__setattr__(self, "headers", CaseInsensitiveDict(self.headers or {}))

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name)

    @property
    def content_type(self) -> str:
        """Media type without parameters, e.g. ``text/turtle`` for ``text/turtle; charset=utf-8``."""
        value = self.headers.get("Content-Type") or ""
        return value.split(";", 1)[0].strip()

    @property
    def location(self) -> Optional[str]:
        return self.headers.get("Location") or None


@dataclass(frozen=True)
class Ok:
    response: HttpResponse


@dataclass(frozen=True)
class Err:
    message: str
    exception: Optional[BaseException] = field(default=None, compare=False)


SendResult = Union[Ok, Err]


class RequestsTransport:
    """Sends one request with :mod:`requests` and never follows redirects."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
        headers: Optional[dict] = None,
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.headers = dict(DEFAULT_HEADERS)
        if headers:
            self.headers.update(headers)

    def send(self, request: HttpRequest) -> SendResult:
        headers = {**self.headers, **request.headers}
        try:
            resp = self.session.request(
                request.method,
                request.url,
                headers=headers,
                timeout=self.timeout,
                allow_redirects=False,
            )
        except requests.exceptions.RequestException as e:
            logger.debug("%s %s failed: %s", request.method, request.url, e)
            return Err(str(e), e)

        logger.debug("%s %s -> %s", request.method, request.url, resp.status_code)
        return Ok(HttpResponse(
            status_code=resp.status_code,
            headers=CaseInsensitiveDict(resp.headers),
            body=resp.content,
        ))

    def close(self):
        self.session.close()
