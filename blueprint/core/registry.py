"""In-memory registry of installable services."""
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from blueprint.core.errors import DescriptorValidationError, ServiceNotFoundError
from blueprint.core.logger import get_logger
from blueprint.models.service import ServiceDescriptor

logger = get_logger(__name__)


class ServiceRegistry:
    """Maps service names to descriptors.

    Populated once at startup, before any command runs. Registering a name
    twice silently replaces the earlier descriptor, so registration order
    must be deterministic.
    """

    def __init__(self):
        self._services: Dict[str, ServiceDescriptor] = {}

    def register(self, descriptor: Union[ServiceDescriptor, Mapping[str, Any]]) -> None:
        """Register a descriptor, validating it first.

        Raises:
            DescriptorValidationError: If a mapping does not describe a valid service
        """
        if not isinstance(descriptor, ServiceDescriptor):
            try:
                descriptor = ServiceDescriptor.model_validate(dict(descriptor))
            except ValidationError as e:
                name = dict(descriptor).get('name', '<unnamed>')
                raise DescriptorValidationError(f"Invalid service descriptor '{name}': {e}") from e

        if descriptor.name in self._services:
            logger.debug(f"Replacing registered service: {descriptor.name}")
        self._services[descriptor.name] = descriptor

    def lookup(self, name: str) -> Optional[ServiceDescriptor]:
        return self._services.get(name)

    def get(self, name: str) -> ServiceDescriptor:
        """Like lookup, but raises ServiceNotFoundError when missing."""
        descriptor = self._services.get(name)
        if descriptor is None:
            raise ServiceNotFoundError(name)
        return descriptor

    def list(self) -> List[str]:
        return list(self._services)

    def __contains__(self, name: str) -> bool:
        return name in self._services

    def __len__(self) -> int:
        return len(self._services)
