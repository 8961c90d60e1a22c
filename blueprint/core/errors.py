"""Exception taxonomy for Blueprint operations."""
from typing import Optional

# stderr fragments podman and systemctl print when the target simply isn't there
NOT_FOUND_MARKERS = (
    "no such",
    "not found",
    "not loaded",
    "does not exist",
    "no secret with name",
    "no volume with name",
    "transient or generated",  # Quadlet units have no install state to disable
)


class BlueprintError(Exception):
    """Base class for all Blueprint errors."""
    pass


class CommandError(BlueprintError):
    """Raised when an external command exits non-zero."""

    def __init__(
        self,
        command: str,
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ):
        self.command = command
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        detail = self.stderr.strip() or self.stdout.strip() or "no output"
        super().__init__(f"Command '{command}' failed with exit code {returncode}: {detail}")

    @property
    def is_not_found(self) -> bool:
        """True when the failure means the target was already absent."""
        text = f"{self.stderr}\n{self.stdout}".lower()
        return any(marker in text for marker in NOT_FOUND_MARKERS)


class ServiceNotFoundError(BlueprintError):
    """Raised when a service name is not in the registry."""

    def __init__(self, service: str):
        self.service = service
        super().__init__(f"Service '{service}' not found")


class DescriptorValidationError(BlueprintError):
    """Raised when a service descriptor is malformed at registration time."""
    pass


class InstallError(BlueprintError):
    """Raised when an install step fails.

    Carries the service and step so an operator knows where to resume.
    """

    def __init__(self, service: str, step: str, cause: Optional[BaseException] = None, detail: str = ""):
        self.service = service
        self.step = step
        self.cause = cause
        message = f"Installing '{service}' failed at step '{step}'"
        if detail:
            message += f" ({detail})"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class SecretProvisionError(InstallError):
    """Raised when a secret could not be created."""

    def __init__(self, service: str, secret: str, cause: Optional[BaseException] = None):
        self.secret = secret
        super().__init__(service, "secrets", cause, detail=f"secret {secret}")


class ContainerStartError(InstallError):
    """Raised when a container unit fails to start."""

    def __init__(self, service: str, unit: str, cause: Optional[BaseException] = None):
        self.unit = unit
        super().__init__(service, "start", cause, detail=f"unit {unit}")


class ProxyReloadError(InstallError):
    """Raised when the reverse proxy could not be restarted after writing a route."""

    def __init__(self, service: str, unit: str, cause: Optional[BaseException] = None):
        self.unit = unit
        super().__init__(service, "proxy-restart", cause, detail=f"route written but {unit} not restarted")


class UserNotFoundError(BlueprintError):
    """Raised when a username is not in the Authelia users database."""

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"User '{username}' not found")


class UserExistsError(BlueprintError):
    """Raised when adding a username that is already in the users database."""

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"User '{username}' already exists")


class RouteExistsError(BlueprintError):
    """Raised when a domain route file already exists."""

    def __init__(self, domain: str):
        self.domain = domain
        super().__init__(f"A route for '{domain}' already exists")


def is_absent_error(error: BaseException) -> bool:
    """Classify an error as 'the thing was already gone'."""
    if isinstance(error, FileNotFoundError):
        return True
    if isinstance(error, CommandError):
        return error.is_not_found
    return False
