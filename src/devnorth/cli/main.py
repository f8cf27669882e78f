"""DevNorth CLI — run the server and manage secrets.

Usage:
    devnorth serve                      # Start the API (uvicorn, factory mode)
    devnorth generate-key               # Print a fresh JWT signing key
    devnorth hash-password              # Prompt for a password, print its bcrypt hash
"""

from __future__ import annotations

import secrets

import click

from devnorth.auth.password import DEFAULT_COST, PasswordHasher
from devnorth.auth.tokens import MIN_KEY_LENGTH
from devnorth.errors import ConfigurationError, InvalidCredentialsError


@click.group()
def cli():
    """DevNorth backend tools."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: DEVNORTH_HOST).")
@click.option("--port", default=None, type=int, help="Port (default: DEVNORTH_PORT).")
@click.option("--reload", is_flag=True, help="Reload on code changes (development).")
def serve(host, port, reload):
    """Start the API server."""
    import uvicorn

    from devnorth.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "devnorth.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command("generate-key")
@click.option("--bytes", "num_bytes", default=48, show_default=True,
              help="Random bytes before url-safe encoding.")
def generate_key(num_bytes):
    """Print a random key suitable for DEVNORTH_JWT_KEYS."""
    key = secrets.token_urlsafe(num_bytes)
    if len(key) < MIN_KEY_LENGTH:
        raise click.BadParameter(
            f"key would be {len(key)} characters, minimum is {MIN_KEY_LENGTH}",
            param_hint="--bytes",
        )
    click.echo(key)


@cli.command("hash-password")
@click.option("--cost", default=DEFAULT_COST, show_default=True, help="bcrypt cost factor.")
@click.password_option(prompt="Password")
def hash_password(cost, password):
    """Print the bcrypt hash of a password (e.g. to seed an admin user)."""
    try:
        hasher = PasswordHasher(cost=cost)
        click.echo(hasher.hash(password))
    except ConfigurationError as e:
        raise click.BadParameter(str(e), param_hint="--cost")
    except InvalidCredentialsError:
        raise click.ClickException("password is longer than 72 bytes")


if __name__ == "__main__":
    cli()
