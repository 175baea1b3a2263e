import hashlib

import pytest

from asynccasa.exceptions.auth import AuthenticationError
from asynccasa.utils.digest import (
    DigestChallenge,
    build_authorization,
    compute_response,
    make_cnonce,
    parse_challenge,
    select_challenge,
    select_qop,
)


def _sha256(text):
    return hashlib.sha256(text.encode()).hexdigest()


def test_rfc2617_md5_vector():
    challenge = DigestChallenge(
        realm="testrealm@host.com",
        nonce="dcd98b7102dd2f0e8b11d0f600bfb0c093",
        opaque="5ccc069c403ebaf9f0171e9517f40e41",
    )
    response = compute_response(
        username="Mufasa",
        password="Circle Of Life",
        challenge=challenge,
        method="GET",
        uri="/dir/index.html",
        qop="auth",
        nonce_count=1,
        cnonce="0a4f113b",
    )
    assert response == "6629fae49393a05397450978507c4ef1"


def test_sha256_response_construction():
    challenge = DigestChallenge(realm="http-auth@example.org", nonce="abc", algorithm="SHA-256")
    ha1 = _sha256("Mufasa:http-auth@example.org:Circle of Life")
    ha2 = _sha256("GET:/dir/index.html")
    expected = _sha256(f"{ha1}:abc:0000000a:xyz:auth:{ha2}")

    assert compute_response(
        username="Mufasa",
        password="Circle of Life",
        challenge=challenge,
        method="GET",
        uri="/dir/index.html",
        qop="auth",
        nonce_count=10,
        cnonce="xyz",
    ) == expected


def test_auth_int_folds_in_body_hash():
    challenge = DigestChallenge(realm="r", nonce="n")
    md5 = lambda s: hashlib.md5(s.encode()).hexdigest()  # noqa: E731
    ha1 = md5("u:r:p")
    # empty body hashes to the hash of the empty string
    ha2 = md5(f"GET:/x:{md5('')}")
    expected = md5(f"{ha1}:n:00000001:c:auth-int:{ha2}")

    assert compute_response(
        username="u", password="p", challenge=challenge, method="GET",
        uri="/x", qop="auth-int", nonce_count=1, cnonce="c",
    ) == expected


def test_sess_variant_rehashes_ha1():
    challenge = DigestChallenge(realm="r", nonce="n", algorithm="MD5-sess")
    md5 = lambda s: hashlib.md5(s.encode()).hexdigest()  # noqa: E731
    ha1 = md5(f"{md5('u:r:p')}:n:c")
    expected = md5(f"{ha1}:n:00000001:c:auth:{md5('GET:/x')}")

    assert compute_response(
        username="u", password="p", challenge=challenge, method="GET",
        uri="/x", qop="auth", nonce_count=1, cnonce="c",
    ) == expected


def test_legacy_response_without_qop():
    challenge = DigestChallenge(realm="r", nonce="n")
    md5 = lambda s: hashlib.md5(s.encode()).hexdigest()  # noqa: E731
    expected = md5(f"{md5('u:r:p')}:n:{md5('GET:/x')}")

    assert compute_response(
        username="u", password="p", challenge=challenge, method="GET", uri="/x",
    ) == expected


def test_parse_challenge_full():
    challenge = parse_challenge(
        'Digest realm="smgw, main", qop="auth,auth-int", nonce="abc123", '
        'opaque="xyz", algorithm=SHA-256, stale=TRUE'
    )
    assert challenge.realm == "smgw, main"
    assert challenge.nonce == "abc123"
    assert challenge.opaque == "xyz"
    assert challenge.algorithm == "SHA-256"
    assert challenge.qop == ("auth", "auth-int")
    assert challenge.stale is True


def test_parse_challenge_defaults_to_md5():
    challenge = parse_challenge('Digest realm="r", nonce="n"')
    assert challenge.algorithm == "MD5"
    assert challenge.qop == ()
    assert challenge.opaque is None
    assert challenge.stale is False


def test_parse_challenge_unescapes_quoted_values():
    challenge = parse_challenge(r'Digest realm="say \"hi\"", nonce="n"')
    assert challenge.realm == 'say "hi"'


@pytest.mark.parametrize("header", [
    'Basic realm="r"',
    'Digest realm="r"',
    'Digest nonce="n"',
    'Digest realm="r", nonce="n", algorithm=SHA-1',
    "",
])
def test_parse_challenge_rejects_unusable(header):
    with pytest.raises(AuthenticationError):
        parse_challenge(header)


def test_select_challenge_prefers_strongest():
    challenge = select_challenge([
        'Basic realm="r"',
        'Digest realm="r", nonce="n1", algorithm=MD5',
        'Digest realm="r", nonce="n2", algorithm=SHA-256',
    ])
    assert challenge.nonce == "n2"


def test_select_challenge_without_digest():
    with pytest.raises(AuthenticationError):
        select_challenge([])
    with pytest.raises(AuthenticationError):
        select_challenge(['Basic realm="r"'])


def test_select_qop():
    assert select_qop(["auth-int", "auth"]) == "auth"
    assert select_qop(["auth-int"]) == "auth-int"
    assert select_qop([]) is None
    with pytest.raises(AuthenticationError):
        select_qop(["token"])


def test_build_authorization_fields():
    challenge = DigestChallenge(realm="r", nonce="n", opaque="o")
    header = build_authorization(
        username="u", password="hunter2", challenge=challenge, method="GET",
        uri="/json/metering/derived", qop="auth", nonce_count=26, cnonce="cn",
    )
    assert header.startswith("Digest ")
    assert 'username="u"' in header
    assert 'uri="/json/metering/derived"' in header
    assert "nc=0000001a" in header
    assert 'cnonce="cn"' in header
    assert 'opaque="o"' in header
    assert "qop=auth" in header
    assert "hunter2" not in header


def test_build_authorization_legacy_has_no_counter():
    header = build_authorization(
        username="u", password="p", challenge=DigestChallenge(realm="r", nonce="n"),
        method="GET", uri="/",
    )
    assert "nc=" not in header
    assert "cnonce" not in header
    assert "qop" not in header


def test_cnonce_is_fresh():
    values = {make_cnonce() for _ in range(100)}
    assert len(values) == 100
    assert all(len(v) == 32 for v in values)
