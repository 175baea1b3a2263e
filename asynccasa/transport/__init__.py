from .base import AiohttpTransport, Request, Response, Transport
from .digest import AuthPhase, ChallengeCache, DigestAuthTransport
from .host import HostRoutingTransport

__all__ = [
    "AiohttpTransport",
    "AuthPhase",
    "ChallengeCache",
    "DigestAuthTransport",
    "HostRoutingTransport",
    "Request",
    "Response",
    "Transport",
]
