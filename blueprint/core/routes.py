"""Extra domain routes kept as proxy fragments next to the addon routes."""
import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from blueprint.core.errors import RouteExistsError
from blueprint.core.logger import get_logger
from blueprint.core.units import FRAGMENT_SUFFIX, fragment_path, fragments_dir
from blueprint.models.deployment import is_valid_hostname
from blueprint.templates.caddy import domain_route

logger = get_logger(__name__)

_SITE_LINE = re.compile(r'^([^\s#{][^{]*?)\s*\{\s*$')
_UPSTREAM = re.compile(r'reverse_proxy\s+([^\s{]+)')
_ROOT = re.compile(r'root\s+(?:\*\s+)?([^\s}]+)')


def validate_route_domain(domain: str) -> str:
    """Normalize a route domain or raise ValueError.

    Service names never contain dots, so a route file cannot shadow an addon's
    fragment.
    """
    domain = domain.lower()
    if not is_valid_hostname(domain) or "." not in domain:
        raise ValueError(f"Invalid domain '{domain}'. Use a hostname like app.example.com")
    return domain


def route_body(target: Optional[str] = None, respond: Optional[str] = None) -> List[str]:
    """Caddy directives serving ``target``.

    URLs and ``host:port`` upstreams are reverse proxied, absolute paths are
    served as static files, and ``respond`` returns fixed text.
    """
    if respond is not None:
        return [f"respond {json.dumps(respond)}"]
    if not target:
        raise ValueError("A target or a response text is required")
    if target.startswith("/"):
        return ["file_server {", f"    root {target}", "}"]
    return [f"reverse_proxy {target}"]


@dataclass
class DomainRoute:
    """A site block routing one domain to a target."""
    domain: str
    target: Optional[str] = None
    path: str = "/"
    require_auth: bool = False
    respond: Optional[str] = None

    def __post_init__(self):
        self.domain = validate_route_domain(self.domain)
        if not self.path.startswith("/"):
            raise ValueError(f"Path prefix must start with '/': {self.path}")
        if self.target is not None and self.respond is not None:
            raise ValueError("Use either a target or a response text, not both")

    def render(self, config: Any) -> str:
        return domain_route(
            config,
            site=self.domain,
            body=route_body(self.target, self.respond),
            path=self.path.rstrip("/") or "/",
            require_auth=self.require_auth,
        )


@dataclass
class RouteInfo:
    """What a fragment file routes, as far as a quick scan can tell."""
    source: str
    sites: List[str]
    upstream: Optional[str] = None
    root: Optional[str] = None
    auth: bool = False

    @property
    def is_domain_route(self) -> bool:
        return "." in self.source


def describe_fragment(path: Path) -> RouteInfo:
    text = path.read_text()
    sites = []
    for line in text.splitlines():
        match = _SITE_LINE.match(line)
        if match:
            sites.append(match.group(1).strip())

    upstream = _UPSTREAM.search(text)
    root = _ROOT.search(text)
    return RouteInfo(
        source=path.name[:-len(FRAGMENT_SUFFIX) - 1],
        sites=sites,
        upstream=upstream.group(1) if upstream else None,
        root=root.group(1) if root else None,
        auth="forward_auth" in text,
    )


class RouteManager:
    """Adds, lists, and removes route fragments in ``containers/caddyfiles``.

    The main Caddyfile imports every fragment, so a route takes effect on the
    next proxy restart.
    """

    def __init__(self, deploy_dir: Path):
        self.deploy_dir = Path(deploy_dir)

    def path(self, domain: str) -> Path:
        return fragment_path(self.deploy_dir, domain.lower())

    def add(self, route: DomainRoute, config: Any, replace: bool = False) -> Path:
        """Write the route fragment.

        Raises:
            RouteExistsError: A route for the domain exists and ``replace`` is False
        """
        path = self.path(route.domain)
        if path.exists() and not replace:
            raise RouteExistsError(route.domain)

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(route.render(config))
        logger.debug(f"Wrote {path}")
        return path

    def list(self) -> List[RouteInfo]:
        directory = fragments_dir(self.deploy_dir)
        if not directory.is_dir():
            return []
        return [describe_fragment(p) for p in sorted(directory.glob(f"*.{FRAGMENT_SUFFIX}"))]

    def remove(self, domain: str) -> bool:
        """Delete a domain route; False if there was none."""
        path = self.path(validate_route_domain(domain))
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.debug(f"Removed {path}")
        return True
