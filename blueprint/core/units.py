"""Writing and removing Quadlet unit files and proxy route fragments."""
from pathlib import Path
from typing import Any, Iterable, List, Mapping

from blueprint.core.command_runner import attempt
from blueprint.core.logger import get_logger
from blueprint.models.service import ServiceDescriptor, UnitTemplate

logger = get_logger(__name__)

CONTAINERS_DIR = "containers"
FRAGMENTS_DIR = "caddyfiles"
FRAGMENT_SUFFIX = "fragment"


def units_dir(deploy_dir: Path) -> Path:
    return Path(deploy_dir) / CONTAINERS_DIR


def fragments_dir(deploy_dir: Path) -> Path:
    return units_dir(deploy_dir) / FRAGMENTS_DIR


def authelia_config_dir(deploy_dir: Path) -> Path:
    return units_dir(deploy_dir) / "authelia-config"


def unit_path(deploy_dir: Path, identifier: str, kind: str) -> Path:
    """``{deploy}/containers/{identifier}.{kind}``"""
    return units_dir(deploy_dir) / f"{identifier}.{kind}"


def fragment_path(deploy_dir: Path, service: str) -> Path:
    return fragments_dir(deploy_dir) / f"{service}.{FRAGMENT_SUFFIX}"


def render_unit(template: UnitTemplate, config: Any) -> str:
    if callable(template):
        return template(config)
    return template


class UnitMaterializer:
    """Writes the declarative files the process manager and proxy read.

    Writes always overwrite, so re-running an install regenerates identical
    (or updated) content. The shared Caddyfile is never edited: it imports
    every fragment in ``caddyfiles/`` when the proxy loads.
    """

    def _write_all(self, deploy_dir: Path, templates: Mapping[str, UnitTemplate], kind: str, config: Any) -> List[Path]:
        target_dir = units_dir(deploy_dir)
        target_dir.mkdir(parents=True, exist_ok=True)

        written = []
        for identifier, template in templates.items():
            path = unit_path(deploy_dir, identifier, kind)
            path.write_text(render_unit(template, config))
            logger.debug(f"Wrote {path}")
            written.append(path)
        return written

    def write_networks(self, deploy_dir: Path, templates: Mapping[str, UnitTemplate], config: Any = None) -> List[Path]:
        return self._write_all(deploy_dir, templates, "network", config)

    def write_volumes(self, deploy_dir: Path, templates: Mapping[str, UnitTemplate], config: Any = None) -> List[Path]:
        return self._write_all(deploy_dir, templates, "volume", config)

    def write_containers(self, deploy_dir: Path, templates: Mapping[str, UnitTemplate], config: Any = None) -> List[Path]:
        return self._write_all(deploy_dir, templates, "container", config)

    def write_proxy_fragment(self, deploy_dir: Path, service: str, text: str) -> Path:
        """Write ``caddyfiles/{service}.fragment``, creating the directory if needed."""
        target_dir = fragments_dir(deploy_dir)
        target_dir.mkdir(parents=True, exist_ok=True)

        path = fragment_path(deploy_dir, service)
        path.write_text(text)
        logger.debug(f"Wrote {path}")
        return path

    def remove_artifacts(self, deploy_dir: Path, descriptor: ServiceDescriptor, shared_networks: Iterable[str] = ()) -> List[Path]:
        """Delete the service's unit files and fragment, ignoring missing ones.

        Returns:
            Paths whose removal failed for a reason other than being absent
        """
        paths = [unit_path(deploy_dir, c, "container") for c in descriptor.container_units()]
        paths += [unit_path(deploy_dir, v, "volume") for v in descriptor.owned_volumes()]
        paths += [unit_path(deploy_dir, n, "network") for n in descriptor.owned_networks(tuple(shared_networks))]
        if descriptor.has_proxy_fragment:
            paths.append(fragment_path(deploy_dir, descriptor.name))

        failed = []
        for path in paths:
            result = attempt(f"Removing {path}", path.unlink)
            if result.unexpected:
                failed.append(path)
        return failed
