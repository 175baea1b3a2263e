"""
Resolution of a gateway advertised under a logical hostname.
"""

import asyncio
import logging
import socket
from typing import Optional

from asynccasa.config import settings
from asynccasa.exceptions.api import DiscoveryError

logger = logging.getLogger(__name__)


async def resolve_gateway(hostname: str, timeout: Optional[float] = None) -> str:
    """Resolve *hostname* (e.g. ``smgw.local``) to an IP address.

    Args:
        hostname: Logical name the gateway is advertised under
        timeout: Seconds to wait before giving up (``settings.resolve_timeout``
            when omitted)

    Returns:
        The first address returned by the resolver

    Raises:
        DiscoveryError: If the name cannot be resolved in time
    """
    if timeout is None:
        timeout = settings.resolve_timeout

    loop = asyncio.get_running_loop()
    try:
        infos = await asyncio.wait_for(
            loop.getaddrinfo(hostname, None, type=socket.SOCK_STREAM),
            timeout,
        )
    except asyncio.TimeoutError as exc:
        raise DiscoveryError(f"Resolving {hostname} timed out after {timeout}s") from exc
    except OSError as exc:
        raise DiscoveryError(f"Cannot resolve {hostname}: {exc}") from exc

    if not infos:
        raise DiscoveryError(f"No address found for {hostname}")

    address = infos[0][4][0]
    logger.debug(f"Resolved {hostname} to {address}")
    return address
