"""
HTTP Digest authentication helpers (RFC 2617 / RFC 7616).

Everything in here is pure: challenge parsing, response computation and
header rendering.  Bookkeeping of nonce counts lives in
:mod:`asynccasa.transport.digest`.
"""

import hashlib
import re
import secrets
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from asynccasa.exceptions.auth import AuthenticationError

DEFAULT_ALGORITHM = "MD5"

QOP_AUTH = "auth"
QOP_AUTH_INT = "auth-int"

MAX_NONCE_COUNT = 0xFFFFFFFF


def _hasher(name: str) -> Callable[[bytes], str]:
    def digest(data: bytes) -> str:
        return hashlib.new(name, data).hexdigest()
    return digest


# Base algorithm name -> (strength rank, hashlib name)
_ALGORITHMS: Dict[str, Tuple[int, str]] = {
    "MD5": (1, "md5"),
    "SHA-256": (2, "sha256"),
    "SHA-512-256": (3, "sha512_256"),
}

_PARAM_RE = re.compile(
    r'([A-Za-z0-9_-]+)\s*=\s*(?:"((?:[^"\\]|\\.)*)"|([^\s,]*))'
)


def _base_algorithm(algorithm: str) -> str:
    algorithm = algorithm.upper()
    if algorithm.endswith("-SESS"):
        return algorithm[: -len("-SESS")]
    return algorithm


def is_supported_algorithm(algorithm: str) -> bool:
    base = _base_algorithm(algorithm)
    if base not in _ALGORITHMS:
        return False
    return _ALGORITHMS[base][1] in hashlib.algorithms_available


def hash_function(algorithm: str) -> Callable[[bytes], str]:
    """Return a ``bytes -> hex digest`` function for a digest *algorithm* name."""
    if not is_supported_algorithm(algorithm):
        raise AuthenticationError(f"Unsupported digest algorithm: {algorithm}")
    return _hasher(_ALGORITHMS[_base_algorithm(algorithm)][1])


@dataclass(frozen=True)
class DigestChallenge:
    """A parsed ``WWW-Authenticate: Digest ...`` challenge."""

    realm: str
    nonce: str
    opaque: Optional[str] = None
    algorithm: str = DEFAULT_ALGORITHM
    qop: Tuple[str, ...] = field(default_factory=tuple)
    stale: bool = False

    @property
    def rank(self) -> int:
        return _ALGORITHMS[_base_algorithm(self.algorithm)][0]


def _parse_params(text: str) -> Dict[str, str]:
    params: Dict[str, str] = {}
    for match in _PARAM_RE.finditer(text):
        name = match.group(1).lower()
        if match.group(2) is not None:
            value = re.sub(r"\\(.)", r"\1", match.group(2))
        else:
            value = match.group(3)
        params.setdefault(name, value)
    return params


def parse_challenge(header: str) -> DigestChallenge:
    """Parse a single ``WWW-Authenticate`` header value.

    Raises:
        AuthenticationError: If the header is not a usable Digest challenge
    """
    scheme, _, rest = header.strip().partition(" ")
    if scheme.lower() != "digest":
        raise AuthenticationError(f"Not a digest challenge: {scheme or header!r}")

    params = _parse_params(rest)
    realm = params.get("realm")
    nonce = params.get("nonce")
    if realm is None or not nonce:
        raise AuthenticationError("Digest challenge is missing realm or nonce")

    algorithm = params.get("algorithm") or DEFAULT_ALGORITHM
    if not is_supported_algorithm(algorithm):
        raise AuthenticationError(f"Unsupported digest algorithm: {algorithm}")

    qop = tuple(
        token.strip().lower()
        for token in params.get("qop", "").split(",")
        if token.strip()
    )

    return DigestChallenge(
        realm=realm,
        nonce=nonce,
        opaque=params.get("opaque"),
        algorithm=algorithm,
        qop=qop,
        stale=params.get("stale", "").lower() == "true",
    )


def select_challenge(headers: Iterable[str]) -> DigestChallenge:
    """Pick the strongest usable Digest challenge among *headers*.

    Raises:
        AuthenticationError: If none of the headers is a usable Digest challenge
    """
    best: Optional[DigestChallenge] = None
    last_error: Optional[AuthenticationError] = None
    for header in headers:
        try:
            challenge = parse_challenge(header)
        except AuthenticationError as exc:
            last_error = exc
            continue
        if best is None or challenge.rank > best.rank:
            best = challenge
    if best is None:
        raise last_error or AuthenticationError("Response carries no digest challenge")
    return best


def select_qop(offered: Iterable[str]) -> Optional[str]:
    """Choose the quality of protection; ``None`` means legacy RFC 2069 mode."""
    offered = list(offered)
    if not offered:
        return None
    for qop in (QOP_AUTH, QOP_AUTH_INT):
        if qop in offered:
            return qop
    raise AuthenticationError(f"No supported qop offered: {', '.join(offered)}")


def make_cnonce() -> str:
    """Return a fresh client nonce."""
    return secrets.token_hex(16)


def compute_response(
    *,
    username: str,
    password: str,
    challenge: DigestChallenge,
    method: str,
    uri: str,
    qop: Optional[str] = None,
    nonce_count: int = 1,
    cnonce: str = "",
    body: bytes = b"",
) -> str:
    """Compute the ``response`` field of a digest ``Authorization`` header."""
    h = hash_function(challenge.algorithm)

    ha1 = h(f"{username}:{challenge.realm}:{password}".encode("utf-8"))
    if challenge.algorithm.upper().endswith("-SESS"):
        ha1 = h(f"{ha1}:{challenge.nonce}:{cnonce}".encode("utf-8"))

    if qop == QOP_AUTH_INT:
        ha2 = h(f"{method}:{uri}:{h(body)}".encode("utf-8"))
    else:
        ha2 = h(f"{method}:{uri}".encode("utf-8"))

    if qop is None:
        return h(f"{ha1}:{challenge.nonce}:{ha2}".encode("utf-8"))
    return h(
        f"{ha1}:{challenge.nonce}:{nonce_count:08x}:{cnonce}:{qop}:{ha2}".encode("utf-8")
    )


def build_authorization(
    *,
    username: str,
    password: str,
    challenge: DigestChallenge,
    method: str,
    uri: str,
    qop: Optional[str] = None,
    nonce_count: int = 1,
    cnonce: str = "",
    body: bytes = b"",
) -> str:
    """Render the ``Authorization`` header value for one request."""
    response = compute_response(
        username=username,
        password=password,
        challenge=challenge,
        method=method,
        uri=uri,
        qop=qop,
        nonce_count=nonce_count,
        cnonce=cnonce,
        body=body,
    )

    parts: List[str] = [
        f'username="{_quote(username)}"',
        f'realm="{_quote(challenge.realm)}"',
        f'nonce="{_quote(challenge.nonce)}"',
        f'uri="{_quote(uri)}"',
        f"algorithm={challenge.algorithm}",
        f'response="{response}"',
    ]
    if challenge.opaque is not None:
        parts.append(f'opaque="{_quote(challenge.opaque)}"')
    if qop is not None:
        parts.append(f"qop={qop}")
        parts.append(f"nc={nonce_count:08x}")
        parts.append(f'cnonce="{cnonce}"')

    return "Digest " + ", ".join(parts)


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')
