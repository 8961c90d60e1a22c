"""Tests for the service registry."""
import pytest

from blueprint.core.errors import DescriptorValidationError, ServiceNotFoundError
from blueprint.core.registry import ServiceRegistry
from blueprint.models.service import ServiceDescriptor


def _unit(config):
    return "[Container]\nImage=example\n"


class TestRegister:
    """Test registration and lookup."""

    def test_register_and_get(self, whoami):
        registry = ServiceRegistry()
        registry.register(whoami)

        assert registry.get("whoami") is whoami
        assert registry.lookup("whoami") is whoami
        assert "whoami" in registry
        assert len(registry) == 1

    def test_lookup_unknown_returns_none(self):
        assert ServiceRegistry().lookup("nope") is None

    def test_get_unknown_raises(self):
        with pytest.raises(ServiceNotFoundError) as exc:
            ServiceRegistry().get("nope")
        assert exc.value.service == "nope"
        assert "nope" in str(exc.value)

    def test_last_registration_wins(self, whoami):
        registry = ServiceRegistry()
        registry.register(whoami)
        replacement = whoami.model_copy(update={"display_name": "Who Am I v2"})
        registry.register(replacement)

        assert registry.get("whoami").label == "Who Am I v2"
        assert registry.list() == ["whoami"]

    def test_registries_are_independent(self, whoami):
        first = ServiceRegistry()
        second = ServiceRegistry()
        first.register(whoami)

        assert "whoami" in first
        assert "whoami" not in second

    def test_list_contains_every_name(self, whoami):
        registry = ServiceRegistry()
        registry.register(whoami)
        registry.register({
            "name": "echo",
            "containers": ["echo"],
            "templates": {"containers": {"echo": _unit}},
        })

        assert sorted(registry.list()) == ["echo", "whoami"]


class TestValidation:
    """Malformed descriptors are rejected when registered."""

    def test_mapping_is_validated_into_descriptor(self):
        registry = ServiceRegistry()
        registry.register({
            "name": "echo",
            "containers": ["echo"],
            "secrets": {"PASSWORD": "hunter2hunter2"},
            "templates": {"containers": {"echo": _unit}},
        })

        descriptor = registry.get("echo")
        assert isinstance(descriptor, ServiceDescriptor)
        assert descriptor.secret_keys == ["PASSWORD"]

    def test_missing_containers_rejected(self):
        with pytest.raises(DescriptorValidationError, match="echo"):
            ServiceRegistry().register({
                "name": "echo",
                "containers": [],
                "templates": {"containers": {"echo": _unit}},
            })

    def test_container_without_template_rejected(self):
        with pytest.raises(DescriptorValidationError, match="without a template"):
            ServiceRegistry().register({
                "name": "echo",
                "containers": ["echo", "echo-db"],
                "templates": {"containers": {"echo": _unit}},
            })

    def test_unknown_field_rejected(self):
        with pytest.raises(DescriptorValidationError):
            ServiceRegistry().register({
                "name": "echo",
                "containers": ["echo"],
                "templates": {"containers": {"echo": _unit}},
                "ports": [8080],
            })

    def test_invalid_name_rejected(self):
        with pytest.raises(DescriptorValidationError):
            ServiceRegistry().register({
                "name": "Echo Server",
                "containers": ["echo"],
                "templates": {"containers": {"echo": _unit}},
            })
