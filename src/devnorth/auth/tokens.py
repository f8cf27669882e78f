"""JWT issuance and verification over a rotating set of HMAC keys.

Learn: Tokens are HS256 JWTs (PyJWT) carrying the user's id, email and
role. The header names the signing key with a "kid", which is what makes
rotation possible without logging everyone out:

1. ring = ring.rotate("key2", new_material)  → key2 signs new tokens,
   key1 still verifies the tokens it already signed
2. wait at least one token lifetime
3. ring = ring.retire("key1")                 → key1 tokens now fail

Rings are immutable. Rotating builds a new ring (and a new TokenService),
so the verification path never reads a structure that is being mutated.

Verification is done in explicit steps rather than one jwt.decode() call
so each failure maps to its own error class: malformed → wrong algorithm
→ unknown kid → bad signature → outside the time window. All of them are
InvalidTokenError subclasses; the HTTP layer answers with one generic
message regardless.
"""

from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Union

import jwt
import structlog

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
    TokenSigningError,
    TokenTooLongError,
    UnexpectedSigningMethodError,
    UnknownCurrentKeyError,
    UnknownKeyIDError,
)

logger = structlog.get_logger()

MIN_KEY_LENGTH = 32
SIGNING_ALGORITHM = "HS256"
HMAC_ALGORITHMS = frozenset({"HS256", "HS384", "HS512"})
DEFAULT_MAX_TOKEN_LENGTH = 4096

KeyMaterial = Union[str, bytes]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_key_bytes(kid: str, material: KeyMaterial) -> bytes:
    # Env-sourced keys often carry stray whitespace; binary keys are used as-is.
    if isinstance(material, str):
        material = material.strip().encode("utf-8")
    if len(material) < MIN_KEY_LENGTH:
        raise KeyTooShortError(
            f"key {kid!r} is {len(material)} bytes, minimum is {MIN_KEY_LENGTH}"
        )
    return bytes(material)


class SigningKeyRing:
    """Immutable kid → key material mapping with one current key."""

    def __init__(self, keys: Mapping[str, KeyMaterial], current_key_id: str):
        if not keys:
            raise EmptyKeyRingError()
        validated = {kid: _to_key_bytes(kid, material) for kid, material in keys.items()}
        if current_key_id not in validated:
            raise UnknownCurrentKeyError(
                f"current key id {current_key_id!r} is not in the key ring"
            )
        self._keys = MappingProxyType(validated)
        self._current_key_id = current_key_id

    @property
    def current_key_id(self) -> str:
        return self._current_key_id

    @property
    def current_key(self) -> bytes:
        return self._keys[self._current_key_id]

    @property
    def key_ids(self) -> frozenset[str]:
        return frozenset(self._keys)

    def get(self, kid: str) -> Optional[bytes]:
        return self._keys.get(kid)

    def __contains__(self, kid: object) -> bool:
        return kid in self._keys

    def rotate(self, kid: str, material: KeyMaterial) -> "SigningKeyRing":
        """Return a new ring with ``kid`` added (or replaced) and made current."""
        keys = dict(self._keys)
        keys[kid] = material
        return SigningKeyRing(keys, current_key_id=kid)

    def retire(self, kid: str) -> "SigningKeyRing":
        """Return a new ring without ``kid``. The current key cannot be retired."""
        if kid == self._current_key_id:
            raise UnknownCurrentKeyError(
                f"cannot retire current key {kid!r}; rotate to another key first"
            )
        keys = {k: v for k, v in self._keys.items() if k != kid}
        return SigningKeyRing(keys, current_key_id=self._current_key_id)

    def __repr__(self) -> str:
        # Never include key material.
        return (
            f"SigningKeyRing(key_ids={sorted(self._keys)!r}, "
            f"current_key_id={self._current_key_id!r})"
        )


class TokenService:
    """Issues and verifies bearer tokens signed with the ring's current key."""

    def __init__(
        self,
        key_ring: SigningKeyRing,
        token_duration: timedelta,
        *,
        clock: Callable[[], datetime] = utcnow,
        max_token_length: int = DEFAULT_MAX_TOKEN_LENGTH,
    ):
        if token_duration <= timedelta(0):
            raise NonPositiveDurationError(
                f"token duration must be positive, got {token_duration}"
            )
        # JWT time claims are whole seconds.
        if token_duration < timedelta(seconds=1):
            raise TokenDurationTooShortError(
                f"token duration must be at least one second, got {token_duration}"
            )
        self.key_ring = key_ring
        self.token_duration = token_duration
        self.max_token_length = max_token_length
        self._clock = clock

    # ─── Issue ───────────────────────────────────────────

    def issue(self, identity: Optional[Identity]) -> str:
        """Sign a token for ``identity`` with the current key."""
        if identity is None:
            logger.error("token.issue_failed", reason="subject_required")
            raise SubjectRequiredError()

        now = self._clock()
        issued_at = int(now.timestamp())
        expires_at = int((now + self.token_duration).timestamp())
        payload = {
            "sub": str(identity.user_id),
            "email": identity.email,
            "role": identity.role.value,
            "iat": issued_at,
            "nbf": issued_at,
            "exp": expires_at,
        }
        kid = self.key_ring.current_key_id
        try:
            return jwt.encode(
                payload,
                self.key_ring.current_key,
                algorithm=SIGNING_ALGORITHM,
                headers={"kid": kid},
            )
        except (jwt.PyJWTError, TypeError, ValueError) as exc:
            logger.error("token.issue_failed", kid=kid, error=str(exc))
            raise TokenSigningError() from exc

    # ─── Verify ──────────────────────────────────────────

    def verify(self, token: str) -> Identity:
        """Verify ``token`` and return the identity embedded in it.

        Raises an InvalidTokenError subclass describing the first check
        that failed.
        """
        try:
            return self._verify(token)
        except InvalidTokenError as exc:
            logger.info("token.rejected", reason=type(exc).__name__)
            raise

    def _verify(self, token: str) -> Identity:
        if not isinstance(token, str) or not token:
            raise MalformedTokenError("token must be a non-empty string")
        if len(token) > self.max_token_length:
            raise TokenTooLongError()

        # 1. Structure
        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as exc:
            raise MalformedTokenError(f"malformed token: {exc}") from exc

        # 2. Algorithm family: HMAC only, so "alg: none" and RS/HS confusion fail here
        algorithm = header.get("alg")
        if algorithm not in HMAC_ALGORITHMS:
            raise UnexpectedSigningMethodError(f"unexpected signing method {algorithm!r}")

        # 3. Key id
        kid = header.get("kid")
        key = self.key_ring.get(kid) if isinstance(kid, str) else None
        if key is None:
            raise UnknownKeyIDError(f"unexpected key ID {kid!r}")

        # 4. Signature (time checks are done below against our own clock)
        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=[algorithm],
                options={
                    "verify_signature": True,
                    "verify_exp": False,
                    "verify_nbf": False,
                    "verify_iat": False,
                    "require": ["sub", "iat", "nbf", "exp"],
                },
            )
        except jwt.InvalidSignatureError as exc:
            raise InvalidSignatureError() from exc
        except jwt.PyJWTError as exc:
            raise MalformedTokenError(f"malformed token: {exc}") from exc

        # 5. Time window
        not_before = _numeric_claim(claims, "nbf")
        expires_at = _numeric_claim(claims, "exp")
        now = self._clock().timestamp()
        if now < not_before:
            raise TokenNotYetValidError()
        if now > expires_at:
            raise TokenExpiredError()

        # 6. Claims echo
        return _identity_from_claims(claims)


def _numeric_claim(claims: dict, name: str) -> float:
    value = claims.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedTokenError(f"claim {name!r} must be a number")
    return value


def _identity_from_claims(claims: dict) -> Identity:
    try:
        return Identity(
            user_id=int(claims["sub"]),
            email=str(claims["email"]),
            role=UserRole(claims["role"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedTokenError(f"invalid identity claims: {exc}") from exc
