"""Error taxonomy shared by the auth core, services, and HTTP layer.

Learn: Three families of errors with different lifetimes:
1. Configuration errors — raised only while constructing components.
   They abort startup; no component falls back to an insecure default.
2. Input rejection / authentication outcome errors — raised per call.
   Many causes collapse into two generic parents (InvalidCredentialsError,
   InvalidTokenError) so callers can answer with one uniform message
   while logs still record the specific subclass.
3. Domain errors — business rule violations (duplicate email, unknown
   competency, ...).

The rate limiter never raises: rejection is a boolean, not an error.
"""


class DevNorthError(Exception):
    """Base class for every error raised by this package."""

    default_message = "devnorth error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)


# ─── Configuration (startup only) ────────────────────────


class ConfigurationError(DevNorthError, ValueError):
    default_message = "invalid configuration"


class KeyTooShortError(ConfigurationError):
    default_message = "key is too short"


class EmptyKeyRingError(ConfigurationError):
    default_message = "key ring must contain at least one key"


class UnknownCurrentKeyError(ConfigurationError):
    default_message = "current key id is not in the key ring"


class NonPositiveDurationError(ConfigurationError):
    default_message = "duration must be positive"


class TokenDurationTooShortError(ConfigurationError):
    default_message = "token duration must be at least one second"


class InvalidCostError(ConfigurationError):
    default_message = "invalid bcrypt cost"


class InvalidRateLimitPolicyError(ConfigurationError):
    default_message = "invalid rate limit policy"


# ─── Credentials ─────────────────────────────────────────


class InvalidCredentialsError(DevNorthError):
    """Generic authentication failure.

    Wrong password, unknown email and oversized secrets all surface as
    this class (or a subclass) so they cannot be told apart from outside.
    """

    default_message = "invalid email or password"


class CredentialTooLongError(InvalidCredentialsError):
    """Secret exceeds bcrypt's 72-byte input limit."""

    default_message = "invalid email or password"


class HashingError(DevNorthError):
    """The underlying hash primitive failed (not a mismatch)."""

    default_message = "failed to hash password"


# ─── Tokens ──────────────────────────────────────────────


class InvalidTokenError(DevNorthError):
    default_message = "invalid or expired token"


class MalformedTokenError(InvalidTokenError):
    default_message = "malformed token"


class TokenTooLongError(MalformedTokenError):
    default_message = "token is too long"


class UnexpectedSigningMethodError(InvalidTokenError):
    default_message = "unexpected signing method"


class UnknownKeyIDError(InvalidTokenError):
    default_message = "unexpected key ID"


class InvalidSignatureError(InvalidTokenError):
    default_message = "invalid token signature"


class TokenExpiredError(InvalidTokenError):
    default_message = "token has expired"


class TokenNotYetValidError(InvalidTokenError):
    default_message = "token is not yet valid"


class SubjectRequiredError(DevNorthError, ValueError):
    default_message = "user can not be None"


class TokenSigningError(DevNorthError):
    default_message = "failed to sign token"


# ─── Domain ──────────────────────────────────────────────


class EmailAlreadyExistsError(DevNorthError):
    default_message = "email already exists"


class InvalidEmailError(DevNorthError):
    default_message = "invalid email format"


class InvalidPasswordError(DevNorthError):
    default_message = "invalid password"


class UserNotFoundError(DevNorthError):
    default_message = "user not found"


class CompetencyNotFoundError(DevNorthError):
    default_message = "competency not found"


class CompetencyAlreadyExistsError(DevNorthError):
    default_message = "competency already exists"


class InvalidCompetencyNameError(DevNorthError):
    default_message = "invalid competency name"
