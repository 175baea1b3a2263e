"""
Transport primitives and the aiohttp-backed base transport.

Every layer of the transport chain implements :class:`Transport`: it accepts a
fully described :class:`Request` and returns a :class:`Response` whose body has
already been read.  Wrappers receive the next transport at construction time.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol, runtime_checkable

import aiohttp
from multidict import CIMultiDict

from asynccasa.config import settings
from asynccasa.exceptions.network import (
    NetworkConnectionError,
    NetworkTimeoutError,
    TransportError,
)

logger = logging.getLogger(__name__)


@dataclass
class Request:
    """An outbound HTTP request."""

    method: str
    url: str
    headers: CIMultiDict = field(default_factory=CIMultiDict)
    body: bytes = b""
    server_hostname: Optional[str] = None

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        if not isinstance(self.headers, CIMultiDict):
            self.headers = CIMultiDict(self.headers)

    def copy(self) -> "Request":
        """Return an independent copy; wrappers modify copies, never the original."""
        return Request(
            method=self.method,
            url=self.url,
            headers=CIMultiDict(self.headers),
            body=self.body,
            server_hostname=self.server_hostname,
        )


@dataclass
class Response:
    """A fully read HTTP response."""

    status: int
    headers: CIMultiDict = field(default_factory=CIMultiDict)
    body: bytes = b""
    url: str = ""


@runtime_checkable
class Transport(Protocol):
    """Anything that can send a :class:`Request` and return a :class:`Response`."""

    async def send(self, request: Request) -> Response:
        ...

    async def close(self) -> None:
        ...


class AiohttpTransport:
    """Base transport on top of a lazily created :class:`aiohttp.ClientSession`.

    Certificate verification is off unless ``verify_ssl`` (or
    ``settings.verify_ssl``) enables it, since gateways present self-signed
    certificates.
    """

    def __init__(self, verify_ssl: Optional[bool] = None):
        self.verify_ssl = settings.verify_ssl if verify_ssl is None else verify_ssl
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Return an open *aiohttp* session, creating it on first use."""
        if self._session is None or self._session.closed:
            connector = None if self.verify_ssl else aiohttp.TCPConnector(ssl=False)
            self._session = aiohttp.ClientSession(connector=connector)
        return self._session

    async def close(self) -> None:
        """Close the underlying *aiohttp* session (idempotent)."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self):
        await self._get_session()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def send(self, request: Request) -> Response:
        session = await self._get_session()

        kwargs = {}
        if request.server_hostname and request.url.startswith("https://"):
            kwargs["server_hostname"] = request.server_hostname

        try:
            async with session.request(
                request.method,
                request.url,
                headers=request.headers,
                data=request.body or None,
                allow_redirects=False,
                **kwargs,
            ) as resp:
                body = await resp.read()
                return Response(
                    status=resp.status,
                    headers=CIMultiDict(resp.headers),
                    body=body,
                    url=request.url,
                )
        except asyncio.TimeoutError as exc:
            raise NetworkTimeoutError(f"{request.method} {request.url} timed out") from exc
        except aiohttp.ClientConnectorError as exc:
            raise NetworkConnectionError(f"{request.method} {request.url} failed: {exc}") from exc
        except aiohttp.ClientError as exc:
            raise TransportError(f"{request.method} {request.url} failed: {exc}") from exc
