"""Jinja2 rendering for unit files and proxy configuration."""
from typing import Any

from jinja2 import BaseLoader, Environment, StrictUndefined

from blueprint.models.deployment import render_context

_env = Environment(
    loader=BaseLoader(),
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    undefined=StrictUndefined,
)


def render(source: str, config: Any = None, **extra: Any) -> str:
    """Render a template string against a deployment config.

    Args:
        source: Jinja2 template text
        config: DeploymentConfig or mapping; its fields become template variables
        **extra: Additional variables (override config fields)

    Raises:
        jinja2.TemplateError: If rendering fails (undefined variables included)
    """
    context = render_context(config) if config is not None else {}
    context.update(extra)
    return _env.from_string(source).render(**context)
