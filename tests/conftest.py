"""
Shared fixtures: an in-memory gateway that enforces digest authentication.
"""

import asyncio
import itertools
import json
import re

import pytest
from multidict import CIMultiDict

from asynccasa.transport.base import Request, Response
from asynccasa.utils.digest import DigestChallenge, compute_response

USERNAME = "admin"
PASSWORD = "secret"
REALM = "smgw"

_AUTH_PARAM = re.compile(r'(\w+)=(?:"([^"]*)"|([^,\s]*))')


def parse_authorization(header):
    scheme, _, rest = header.partition(" ")
    assert scheme == "Digest"
    return {m.group(1): m.group(2) if m.group(2) is not None else m.group(3)
            for m in _AUTH_PARAM.finditer(rest)}


class FakeGateway:
    """Transport double behaving like a CASA gateway behind digest auth.

    Every 401 carries a freshly minted nonce.  Authorized requests are checked
    for a known nonce, an unused (nonce, nc) pair and a correct response hash.
    """

    def __init__(self, routes=None, *, qop="auth", algorithm=None, reject_all=False):
        self.routes = routes or {}
        self.qop = qop
        self.algorithm = algorithm
        self.reject_all = reject_all
        self.requests = []
        self.nonces = set()
        self.seen = set()
        self.replays = []
        self._ids = itertools.count(1)

    def expire_nonces(self):
        self.nonces.clear()

    def _challenge(self, stale=False):
        nonce = f"nonce{next(self._ids):04d}"
        self.nonces.add(nonce)
        header = f'Digest realm="{REALM}", nonce="{nonce}", opaque="op42"'
        if self.qop:
            header += f', qop="{self.qop}"'
        if self.algorithm:
            header += f", algorithm={self.algorithm}"
        if stale:
            header += ", stale=true"
        return Response(
            status=401,
            headers=CIMultiDict({"WWW-Authenticate": header}),
            url="",
        )

    def _verify(self, request, params):
        if self.reject_all:
            return False
        nonce = params.get("nonce")
        key = (nonce, params.get("nc"))
        if key in self.seen:
            self.replays.append(key)
            return False
        self.seen.add(key)
        challenge = DigestChallenge(
            realm=params["realm"],
            nonce=nonce,
            opaque=params.get("opaque"),
            algorithm=params.get("algorithm", "MD5"),
        )
        expected = compute_response(
            username=USERNAME,
            password=PASSWORD,
            challenge=challenge,
            method=request.method,
            uri=params["uri"],
            qop=params.get("qop"),
            nonce_count=int(params.get("nc", "1"), 16),
            cnonce=params.get("cnonce", ""),
            body=request.body,
        )
        return params["username"] == USERNAME and params["response"] == expected

    async def send(self, request: Request) -> Response:
        self.requests.append(request)
        await asyncio.sleep(0)

        header = request.headers.get("Authorization")
        if header is None:
            return self._challenge()

        params = parse_authorization(header)
        if params.get("nonce") not in self.nonces:
            return self._challenge(stale=True)
        if not self._verify(request, params):
            return self._challenge()

        path = request.url.split("://", 1)[1]
        path = path[path.index("/"):] if "/" in path else "/"
        if path not in self.routes:
            return Response(status=404, url=request.url)
        payload = self.routes[path]
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        return Response(status=200, headers=CIMultiDict(), body=body, url=request.url)

    async def close(self):
        pass


def reading(*items):
    return {"values": [
        {"logicalName": name, "value": value, "scaler": scaler, "unit": unit}
        for name, value, scaler, unit in items
    ]}


METER_ROUTES = {
    "/json/metering/derived": ["c1", "c2", "c3"],
    "/json/metering/derived/c1": {"sensorDomains": []},
    "/json/metering/derived/c2": {"sensorDomains": ["meter-x", "meter-y"]},
    "/json/metering/derived/c3": {"sensorDomains": ["meter-z"]},
    "/json/metering/origin/meter-x/extended": reading(
        ("0100010800ff.255", "150", 2, 30),
        ("0100100700ff.255", "2345", 0, 27),
        ("0100200700ff.255", "2301", -1, 35),
    ),
}


@pytest.fixture
def gateway():
    return FakeGateway(dict(METER_ROUTES))
