"""TokenService and SigningKeyRing tests.

Learn: Tests cover:
1. Issue → verify returns the same identity; claim/header layout
2. Each verification step fails with its own InvalidTokenError subclass
3. Time window (expired, not yet valid) via an injected clock
4. Key rotation: old tokens survive rotation, die on retirement
5. Construction-time validation of keys, current key id and duration
"""

import base64
import json
from datetime import timedelta

import jwt
import pytest

from devnorth.auth.tokens import SigningKeyRing, TokenService
from devnorth.domain.user import Identity, UserRole
from devnorth.errors import (
    EmptyKeyRingError,
    InvalidSignatureError,
    InvalidTokenError,
    KeyTooShortError,
    MalformedTokenError,
    NonPositiveDurationError,
    SubjectRequiredError,
    TokenDurationTooShortError,
    TokenExpiredError,
    TokenNotYetValidError,
    TokenTooLongError,
    UnexpectedSigningMethodError,
    UnknownCurrentKeyError,
    UnknownKeyIDError,
)
from tests.conftest import KEY1, KEY2, FakeClock

ALICE = Identity(user_id=42, email="alice@example.com", role=UserRole.ADMIN)


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _forge(header: dict, payload: dict, signature: str = "c2ln") -> str:
    return f"{_b64(header)}.{_b64(payload)}.{signature}"


def _claims(token: str) -> dict:
    return jwt.decode(token, options={"verify_signature": False})


# ─── Issue / verify ─────────────────────────────────────


def test_issue_then_verify_returns_same_identity(token_service):
    token = token_service.issue(ALICE)
    assert token_service.verify(token) == ALICE


def test_token_claims_and_header(token_service, clock):
    token = token_service.issue(ALICE)
    claims = _claims(token)
    header = jwt.get_unverified_header(token)

    assert header["alg"] == "HS256"
    assert header["kid"] == "key1"
    assert claims["sub"] == "42"
    assert claims["email"] == "alice@example.com"
    assert claims["role"] == "ADMIN"
    assert claims["iat"] == int(clock.now.timestamp())
    assert claims["nbf"] == claims["iat"]
    assert claims["exp"] == claims["iat"] + 15 * 60


def test_issue_requires_subject(token_service):
    with pytest.raises(SubjectRequiredError):
        token_service.issue(None)


# ─── Verification failures ──────────────────────────────


@pytest.mark.parametrize("token", ["not-a-token", "a.b.c", ""])
def test_malformed_token(token_service, token):
    with pytest.raises(MalformedTokenError):
        token_service.verify(token)


def test_oversized_token_rejected_before_parsing(token_service):
    with pytest.raises(TokenTooLongError):
        token_service.verify("a" * 5000)


@pytest.mark.parametrize("alg", ["none", "RS256", "ES256", None])
def test_non_hmac_algorithm_rejected(token_service, alg):
    header = {"typ": "JWT", "kid": "key1"}
    if alg is not None:
        header["alg"] = alg
    token = _forge(header, {"sub": "42", "email": "a@b.c", "role": "USER"})
    with pytest.raises(UnexpectedSigningMethodError):
        token_service.verify(token)


def test_unknown_key_id_rejected(token_service):
    other = TokenService(
        SigningKeyRing({"rogue": "r" * 40}, current_key_id="rogue"),
        timedelta(minutes=15),
        clock=token_service._clock,
    )
    with pytest.raises(UnknownKeyIDError):
        token_service.verify(other.issue(ALICE))


def test_missing_key_id_rejected(token_service, clock):
    now = int(clock.now.timestamp())
    token = jwt.encode(
        {"sub": "42", "email": "a@b.c", "role": "USER", "iat": now, "nbf": now, "exp": now + 60},
        KEY1.encode(),
        algorithm="HS256",
    )
    with pytest.raises(UnknownKeyIDError):
        token_service.verify(token)


def test_flipped_signature_rejected(token_service):
    header, payload, signature = token_service.issue(ALICE).split(".")
    flipped = ("B" if signature[0] != "B" else "C") + signature[1:]
    with pytest.raises(InvalidSignatureError):
        token_service.verify(f"{header}.{payload}.{flipped}")


def test_tampered_payload_rejected(token_service):
    header, _, signature = token_service.issue(ALICE).split(".")
    claims = _claims(token_service.issue(ALICE))
    claims["role"] = "ADMIN"
    claims["sub"] = "1"
    with pytest.raises(InvalidSignatureError):
        token_service.verify(f"{header}.{_b64(claims)}.{signature}")


def test_signature_from_other_key_with_trusted_kid_rejected(token_service, clock):
    now = int(clock.now.timestamp())
    token = jwt.encode(
        {"sub": "42", "email": "a@b.c", "role": "USER", "iat": now, "nbf": now, "exp": now + 60},
        KEY2.encode(),
        algorithm="HS256",
        headers={"kid": "key1"},
    )
    with pytest.raises(InvalidSignatureError):
        token_service.verify(token)


def test_missing_identity_claim_is_malformed(token_service, clock):
    now = int(clock.now.timestamp())
    token = jwt.encode(
        {"sub": "42", "email": "a@b.c", "iat": now, "nbf": now, "exp": now + 60},
        KEY1.encode(),
        algorithm="HS256",
        headers={"kid": "key1"},
    )
    with pytest.raises(MalformedTokenError):
        token_service.verify(token)


def test_all_failures_share_generic_parent():
    for error in (
        MalformedTokenError, UnexpectedSigningMethodError, UnknownKeyIDError,
        InvalidSignatureError, TokenExpiredError, TokenNotYetValidError,
    ):
        assert issubclass(error, InvalidTokenError)


# ─── Time window ────────────────────────────────────────


def test_token_valid_until_expiry(token_service, clock):
    token = token_service.issue(ALICE)
    clock.advance(minutes=15)
    assert token_service.verify(token) == ALICE


def test_expired_token_rejected(token_service, clock):
    token = token_service.issue(ALICE)
    clock.advance(minutes=15, seconds=1)
    with pytest.raises(TokenExpiredError):
        token_service.verify(token)


def test_not_yet_valid_token_rejected(key_ring, clock):
    future_clock = FakeClock(clock.now + timedelta(minutes=5))
    issuer = TokenService(key_ring, timedelta(minutes=15), clock=future_clock)
    verifier = TokenService(key_ring, timedelta(minutes=15), clock=clock)
    with pytest.raises(TokenNotYetValidError):
        verifier.verify(issuer.issue(ALICE))


def test_fractional_duration_added_to_unrounded_now(key_ring):
    start = FakeClock().now + timedelta(milliseconds=700)
    service = TokenService(key_ring, timedelta(seconds=1.5), clock=FakeClock(start))
    claims = _claims(service.issue(ALICE))
    assert claims["iat"] == int(start.timestamp())
    assert claims["exp"] == int((start + timedelta(seconds=1.5)).timestamp())
    assert claims["exp"] - claims["iat"] == 2


def test_shortest_allowed_duration_is_valid_on_issue(key_ring):
    start = FakeClock().now + timedelta(milliseconds=999)
    service = TokenService(key_ring, timedelta(seconds=1), clock=FakeClock(start))
    assert service.verify(service.issue(ALICE)) == ALICE


# ─── Rotation ───────────────────────────────────────────


def test_rotation_keeps_old_tokens_valid_until_retired(key_ring, clock):
    old_service = TokenService(key_ring, timedelta(minutes=15), clock=clock)
    old_token = old_service.issue(ALICE)

    rotated = key_ring.rotate("key2", KEY2)
    new_service = TokenService(rotated, timedelta(minutes=15), clock=clock)
    new_token = new_service.issue(ALICE)

    assert jwt.get_unverified_header(new_token)["kid"] == "key2"
    assert new_service.verify(old_token) == ALICE
    assert new_service.verify(new_token) == ALICE

    retired = TokenService(rotated.retire("key1"), timedelta(minutes=15), clock=clock)
    assert retired.verify(new_token) == ALICE
    with pytest.raises(UnknownKeyIDError):
        retired.verify(old_token)


def test_rotation_returns_new_ring(key_ring):
    rotated = key_ring.rotate("key2", KEY2)
    assert key_ring.current_key_id == "key1"
    assert "key2" not in key_ring
    assert rotated.current_key_id == "key2"
    assert rotated.key_ids == {"key1", "key2"}


def test_current_key_cannot_be_retired(key_ring):
    with pytest.raises(UnknownCurrentKeyError):
        key_ring.retire("key1")


def test_verifier_with_only_old_key_rejects_new_tokens(key_ring, clock):
    rotated = key_ring.rotate("key2", KEY2)
    new_token = TokenService(rotated, timedelta(minutes=15), clock=clock).issue(ALICE)
    old_verifier = TokenService(key_ring, timedelta(minutes=15), clock=clock)
    with pytest.raises(UnknownKeyIDError):
        old_verifier.verify(new_token)


# ─── Construction ───────────────────────────────────────


def test_short_key_fails_ring_construction():
    with pytest.raises(KeyTooShortError):
        SigningKeyRing({"key1": KEY1, "key2": "x" * 31}, current_key_id="key1")


def test_key_length_measured_after_trimming_whitespace():
    with pytest.raises(KeyTooShortError):
        SigningKeyRing({"key1": "  " + "x" * 31 + "  "}, current_key_id="key1")


def test_binary_key_material_accepted():
    ring = SigningKeyRing({"bin": bytes(range(32))}, current_key_id="bin")
    assert ring.current_key == bytes(range(32))


def test_empty_ring_rejected():
    with pytest.raises(EmptyKeyRingError):
        SigningKeyRing({}, current_key_id="key1")


def test_unknown_current_key_rejected():
    with pytest.raises(UnknownCurrentKeyError):
        SigningKeyRing({"key1": KEY1}, current_key_id="key9")


@pytest.mark.parametrize("duration", [timedelta(0), timedelta(minutes=-5)])
def test_non_positive_duration_rejected(key_ring, duration):
    with pytest.raises(NonPositiveDurationError):
        TokenService(key_ring, duration)


@pytest.mark.parametrize("duration", [timedelta(milliseconds=1), timedelta(milliseconds=999)])
def test_sub_second_duration_rejected(key_ring, duration):
    with pytest.raises(TokenDurationTooShortError):
        TokenService(key_ring, duration)


def test_ring_repr_hides_key_material(key_ring):
    assert KEY1 not in repr(key_ring)
    assert "key1" in repr(key_ring)
