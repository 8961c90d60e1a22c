"""TOTP secrets and enrollment for Authelia users."""
import base64
import secrets
import shlex
from urllib.parse import quote, urlencode

from blueprint.core.command_runner import CommandRunner
from blueprint.core.config import get_config

TOTP_DIGITS = 6
TOTP_PERIOD = 30


def generate_totp_secret() -> str:
    """160-bit secret, base32 without padding as authenticator apps expect."""
    return base64.b32encode(secrets.token_bytes(20)).decode('ascii').rstrip('=')


def totp_url(secret: str, username: str, issuer: str) -> str:
    """otpauth:// URL for QR codes and manual entry."""
    params = urlencode({
        'secret': secret,
        'issuer': issuer,
        'algorithm': 'SHA1',
        'digits': TOTP_DIGITS,
        'period': TOTP_PERIOD,
    })
    return f"otpauth://totp/{quote(issuer)}:{quote(username)}?{params}"


def register_totp(runner: CommandRunner, username: str, secret: str, container: str = "authelia") -> str:
    """Store a TOTP secret in Authelia's storage via the running container.

    The secret is piped over stdin so it never appears on a command line.

    Raises:
        CommandError: Authelia rejected the registration or is not running
    """
    script = (
        'read -r secret && exec authelia storage user totp generate "$1" '
        '--secret "$secret" --force --config /config/configuration.yml'
    )
    command = (
        f"{get_config().container_tool} exec -i {shlex.quote(container)} "
        f"sh -c {shlex.quote(script)} sh {shlex.quote(username)}"
    )
    return runner.run(command, input=f"{secret}\n")
