"""Blueprint - scaffold and manage a Caddy + Authelia deployment on Podman Quadlet."""

__version__ = "0.3.0"
