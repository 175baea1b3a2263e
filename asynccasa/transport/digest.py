"""
Digest authentication transport.

Requests are authenticated statelessly from the caller's point of view, but
the last challenge received from each authority is cached so that subsequent
requests can authenticate without a round trip.  Every exchange follows the
same small state machine::

    UNAUTHENTICATED --401--> CHALLENGED --2xx/other--> done
    AUTHENTICATED   --401--> CHALLENGED --401--------> AuthenticationError

``AUTHENTICATED`` is the entry phase when a cached challenge exists, otherwise
the exchange starts ``UNAUTHENTICATED``.  ``CHALLENGED`` sends exactly one
retry; there is no path back out of it.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple
from urllib.parse import urlsplit

from asynccasa.exceptions.auth import AuthenticationError
from asynccasa.transport.base import Request, Response, Transport
from asynccasa.utils.digest import (
    MAX_NONCE_COUNT,
    DigestChallenge,
    build_authorization,
    make_cnonce,
    select_challenge,
    select_qop,
)
from asynccasa.utils.http_consts import AUTHORIZATION, UNAUTHORIZED, WWW_AUTHENTICATE

logger = logging.getLogger(__name__)


class AuthPhase(Enum):
    UNAUTHENTICATED = "unauthenticated"
    CHALLENGED = "challenged"
    AUTHENTICATED = "authenticated"


@dataclass(eq=False)
class ChallengeState:
    """Cached challenge of one authority plus its nonce count."""

    challenge: DigestChallenge
    qop: Optional[str]
    nonce_count: int = 0
    valid: bool = True

    @property
    def realm(self) -> str:
        return self.challenge.realm


Reservation = Tuple[ChallengeState, int]


class ChallengeCache:
    """Per-authority challenge states guarded by one lock.

    The lock is only held for short synchronous sections, never across I/O, so
    one cache may be shared by asyncio tasks as well as threads.  Reserving a
    nonce count is a single read-increment-write under the lock, so no two
    requests ever get the same (nonce, nonce count) pair.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[str, ChallengeState] = {}

    def get(self, authority: str) -> Optional[ChallengeState]:
        with self._lock:
            return self._entries.get(authority)

    def _next_count(self, state: ChallengeState) -> Optional[int]:
        if state.nonce_count >= MAX_NONCE_COUNT:
            state.valid = False
            return None
        state.nonce_count += 1
        return state.nonce_count

    def reserve(self, authority: str) -> Optional[Reservation]:
        """Reserve the next nonce count of the cached challenge, if still valid."""
        with self._lock:
            state = self._entries.get(authority)
            if state is None or not state.valid:
                return None
            count = self._next_count(state)
            if count is None:
                return None
            return state, count

    def install(self, authority: str, challenge: DigestChallenge) -> Reservation:
        """Store *challenge* for *authority* and reserve its next nonce count.

        A challenge repeating the cached nonce replaces the cached parameters
        but keeps the cached counter.

        Raises:
            AuthenticationError: If the challenge offers no usable qop or its
                nonce has no counts left
        """
        qop = select_qop(challenge.qop)
        with self._lock:
            state = self._entries.get(authority)
            if (
                state is None
                or state.challenge.nonce != challenge.nonce
                or state.challenge.realm != challenge.realm
            ):
                state = ChallengeState(challenge=challenge, qop=qop)
                self._entries[authority] = state
            else:
                state.challenge = challenge
                state.qop = qop
                state.valid = True
            count = self._next_count(state)
            if count is None:
                raise AuthenticationError("Nonce count exhausted for repeated server nonce")
            return state, count

    def invalidate(self, authority: str, state: ChallengeState) -> None:
        """Mark *state* unusable if it is still the cached entry for *authority*."""
        with self._lock:
            if self._entries.get(authority) is state:
                state.valid = False

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def _authority(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}".lower()


def _digest_uri(url: str) -> str:
    parts = urlsplit(url)
    uri = parts.path or "/"
    if parts.query:
        uri = f"{uri}?{parts.query}"
    return uri


class DigestAuthTransport:
    """Authenticate requests with HTTP Digest, retrying at most once."""

    def __init__(self, username: str, password: str, next_transport: Transport):
        self._username = username
        self._password = password
        self._next = next_transport
        self.cache = ChallengeCache()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(username={self._username!r})"

    def _authorize(self, request: Request, reservation: Reservation) -> Request:
        state, count = reservation
        authorized = request.copy()
        authorized.headers[AUTHORIZATION] = build_authorization(
            username=self._username,
            password=self._password,
            challenge=state.challenge,
            method=request.method,
            uri=_digest_uri(request.url),
            qop=state.qop,
            nonce_count=count,
            cnonce=make_cnonce() if state.qop else "",
            body=request.body,
        )
        return authorized

    @staticmethod
    def _challenge_from(response: Response) -> DigestChallenge:
        try:
            return select_challenge(response.headers.getall(WWW_AUTHENTICATE, []))
        except AuthenticationError as exc:
            raise AuthenticationError(
                f"Unusable challenge from {response.url}: {exc}", status_code=response.status
            ) from exc

    async def send(self, request: Request) -> Response:
        authority = _authority(request.url)
        reservation = self.cache.reserve(authority)
        phase = AuthPhase.AUTHENTICATED if reservation else AuthPhase.UNAUTHENTICATED

        while True:
            if phase is AuthPhase.CHALLENGED:
                challenge = self._challenge_from(response)
                logger.debug(
                    f"Digest challenge from {authority}: realm={challenge.realm!r} "
                    f"algorithm={challenge.algorithm} qop={','.join(challenge.qop) or '-'} "
                    f"stale={challenge.stale}"
                )
                reservation = self.cache.install(authority, challenge)

            if phase is AuthPhase.UNAUTHENTICATED:
                outbound = request
            else:
                outbound = self._authorize(request, reservation)

            response = await self._next.send(outbound)
            if response.status != UNAUTHORIZED:
                return response

            if reservation is not None:
                self.cache.invalidate(authority, reservation[0])

            if phase is AuthPhase.CHALLENGED:
                logger.warning(f"Digest credentials rejected by {authority}")
                raise AuthenticationError(
                    f"Authentication rejected by {request.url}", status_code=response.status
                )
            phase = AuthPhase.CHALLENGED

    async def close(self) -> None:
        await self._next.close()
