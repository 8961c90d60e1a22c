"""Tests for TOTP secrets and enrollment."""
import base64
from urllib.parse import parse_qs, urlparse

from blueprint.core.totp import generate_totp_secret, register_totp, totp_url


class TestSecret:
    """Test TOTP secret generation."""

    def test_base32_without_padding(self):
        secret = generate_totp_secret()
        assert len(secret) == 32
        assert "=" not in secret
        assert len(base64.b32decode(secret)) == 20

    def test_values_differ(self):
        assert generate_totp_secret() != generate_totp_secret()


class TestUrl:
    """Test otpauth URL construction."""

    def test_format(self):
        url = totp_url("JBSWY3DPEHPK3PXP", "alice", "My Site")
        parsed = urlparse(url)

        assert parsed.scheme == "otpauth"
        assert parsed.netloc == "totp"
        assert parsed.path == "/My%20Site:alice"
        assert parse_qs(parsed.query) == {
            "secret": ["JBSWY3DPEHPK3PXP"],
            "issuer": ["My Site"],
            "algorithm": ["SHA1"],
            "digits": ["6"],
            "period": ["30"],
        }


class TestRegister:
    """Test storing the secret in Authelia."""

    def test_secret_goes_through_stdin(self, runner):
        register_totp(runner, "alice", "JBSWY3DPEHPK3PXP")

        command, stdin = runner.calls[0]
        assert command.startswith("podman exec -i authelia sh -c")
        assert "authelia storage user totp generate" in command
        assert command.endswith(" sh alice")
        assert "JBSWY3DPEHPK3PXP" not in command
        assert stdin == "JBSWY3DPEHPK3PXP\n"
