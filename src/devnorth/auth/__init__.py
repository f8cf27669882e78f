"""Authentication core.

Learn: Two leaf components and the FastAPI glue around them:
1. password.PasswordHasher → bcrypt hash/compare with a 72-byte guard
2. tokens.TokenService     → HS256 JWTs over a rotating SigningKeyRing
3. dependencies            → resolve the Bearer token to an Identity

Neither leaf knows about HTTP or the database.
"""
