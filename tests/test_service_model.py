"""Tests for service descriptor and deployment config models."""
import pytest
from pydantic import ValidationError

from blueprint.models.deployment import DeploymentConfig
from blueprint.models.service import SecretSpec, ServiceDescriptor


def _unit(config):
    return "[Container]\n"


class TestServiceDescriptor:
    """Test descriptor validation and derived views."""

    def test_secret_mapping_keeps_order(self):
        descriptor = ServiceDescriptor(
            name="app",
            containers=["app"],
            secrets={"B": "2", "A": "1", "C": lambda prior: prior["A"] + prior["B"]},
            templates={"containers": {"app": _unit}},
        )
        assert descriptor.secret_keys == ["B", "A", "C"]
        assert descriptor.secrets[2].evaluate({"A": "1", "B": "2"}) == "12"

    def test_duplicate_secret_keys_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate secret keys"):
            ServiceDescriptor(
                name="app",
                containers=["app"],
                secrets=[{"key": "X", "value": "1"}, {"key": "X", "value": "2"}],
                templates={"containers": {"app": _unit}},
            )

    def test_descriptor_is_frozen(self, whoami):
        with pytest.raises(ValidationError):
            whoami.name = "other"

    def test_label_defaults_to_name(self, whoami):
        assert whoami.label == "whoami"
        assert whoami.model_copy(update={"display_name": "Who"}).label == "Who"

    def test_owned_networks_exclude_shared(self, registry):
        umami = registry.get("umami")
        assert umami.owned_networks(("core", "addon")) == ["umami"]
        assert umami.owned_networks(()) == ["umami", "addon"]

    def test_proxy_fragment_flag(self, whoami, registry):
        assert whoami.has_proxy_fragment is False
        assert registry.get("umami").has_proxy_fragment is True

    def test_invalid_secret_key(self):
        with pytest.raises(ValidationError):
            SecretSpec(key="1BAD", value="x")

    def test_literal_secret_ignores_prior(self):
        assert SecretSpec(key="DB", value="umami").evaluate({"DB": "other"}) == "umami"


class TestDeploymentConfig:
    """Test deployment settings."""

    def test_defaults_derived_from_domain(self):
        config = DeploymentConfig(domain="Example.COM")
        assert config.domain == "example.com"
        assert config.email == "admin@example.com"
        assert config.smtp_username == "no-reply@mg.example.com"
        assert config.smtp_sender == config.smtp_username
        assert config.smtp_address == "smtp.eu.mailgun.org:587"

    def test_domain_with_scheme_rejected(self):
        with pytest.raises(ValidationError):
            DeploymentConfig(domain="https://example.com")

    def test_extra_keys_preserved(self):
        config = DeploymentConfig.coerce({"domain": "example.com", "umami_tracker": "t.js"})
        assert config.model_dump()["umami_tracker"] == "t.js"

    def test_save_and_load_without_passwords(self, tmp_path):
        config = DeploymentConfig(
            name="web", domain="example.com", smtp_password="smtp-pass", admin_password="Adm1n!Password"
        )
        path = config.save(tmp_path)

        text = path.read_text()
        assert "smtp-pass" not in text
        assert "Adm1n!Password" not in text

        loaded = DeploymentConfig.load(tmp_path)
        assert loaded.name == "web"
        assert loaded.domain == "example.com"
        assert loaded.smtp_password is None

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            DeploymentConfig.load(tmp_path)

    def test_load_rejects_non_mapping(self, tmp_path):
        (tmp_path / "blueprint.yml").write_text("- just\n- a list\n")
        with pytest.raises(ValueError):
            DeploymentConfig.load(tmp_path)
