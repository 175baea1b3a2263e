"""
Host-routing transport.

Embedded gateways answer only to a fixed virtual host.  This wrapper rewrites
the ``Host`` header and the TLS server name of every request passing through
it, while the connection itself still goes to the address of the request URL.
Keep it confined to the chain of a single gateway client.
"""

from asynccasa.exceptions.config import ConfigurationError
from asynccasa.transport.base import Request, Response, Transport


class HostRoutingTransport:
    """Apply a fixed host override to every request before forwarding it."""

    def __init__(self, next_transport: Transport, host: str):
        if not host:
            raise ConfigurationError("host override must not be empty")
        self._next = next_transport
        self.host = host

    async def send(self, request: Request) -> Response:
        routed = request.copy()
        routed.headers["Host"] = self.host
        routed.server_hostname = self.host
        return await self._next.send(routed)

    async def close(self) -> None:
        await self._next.close()
