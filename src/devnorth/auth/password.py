"""Password hashing with bcrypt.

Learn: bcrypt salts automatically and its cost factor makes every hash
deliberately slow (cost 10 ≈ 50–100ms). Two rules on top of the library:

- bcrypt only reads the first 72 bytes of its input. Older versions of
  the library silently truncate, which would let "<72 bytes>A" and
  "<72 bytes>B" share a hash. We refuse such secrets up front instead.
- compare() answers with one generic error for every failure a caller
  could observe, so nothing leaks about *why* a login failed.

The hasher also keeps a dummy hash made with its own cost. The auth
service compares against it when an email is unknown, so that path pays
the same bcrypt price as a wrong password.
"""

import bcrypt

from devnorth.errors import (
    CredentialTooLongError,
    HashingError,
    InvalidCostError,
    InvalidCredentialsError,
)

MAX_SECRET_BYTES = 72
MIN_COST = 4
MAX_COST = 31
DEFAULT_COST = 10

_DUMMY_SECRET = b"devnorth-timing-equalization"


class PasswordHasher:
    """bcrypt hasher with a fixed, validated cost factor."""

    def __init__(self, cost: int = DEFAULT_COST):
        if not isinstance(cost, int) or isinstance(cost, bool):
            raise InvalidCostError(f"bcrypt cost must be an integer, got {cost!r}")
        if cost < MIN_COST or cost > MAX_COST:
            raise InvalidCostError(
                f"invalid bcrypt cost {cost}, must be between {MIN_COST} and {MAX_COST}"
            )
        self.cost = cost
        # Computed once so the first unknown-email login is not slower
        # than the rest.
        self._dummy_hash = self._hashpw(_DUMMY_SECRET)

    @property
    def dummy_hash(self) -> str:
        return self._dummy_hash

    def hash(self, secret: str) -> str:
        """Return the bcrypt hash of ``secret``.

        Raises CredentialTooLongError for secrets over 72 bytes (UTF-8),
        and HashingError if bcrypt itself fails.
        """
        encoded = secret.encode("utf-8")
        if len(encoded) > MAX_SECRET_BYTES:
            raise CredentialTooLongError()
        return self._hashpw(encoded)

    def compare(self, stored_hash: str, secret: str) -> None:
        """Check ``secret`` against ``stored_hash``.

        Returns None on a match. A mismatch and an oversized secret both
        raise the same InvalidCredentialsError. A stored hash bcrypt
        cannot parse raises HashingError.
        """
        encoded = secret.encode("utf-8")
        if len(encoded) > MAX_SECRET_BYTES:
            raise InvalidCredentialsError()
        try:
            matched = bcrypt.checkpw(encoded, stored_hash.encode("utf-8"))
        except ValueError as exc:
            raise HashingError("failed to compare passwords") from exc
        if not matched:
            raise InvalidCredentialsError()

    def _hashpw(self, encoded: bytes) -> str:
        try:
            salt = bcrypt.gensalt(rounds=self.cost)
            return bcrypt.hashpw(encoded, salt).decode("utf-8")
        except (ValueError, MemoryError) as exc:
            raise HashingError() from exc
