"""Umami Analytics addon."""
from blueprint.core.secret_provisioner import generate_password, generate_secret
from blueprint.models.service import ServiceDescriptor
from blueprint.templates.systemd import network_unit, volume_unit
from blueprint.templates.umami import (
    umami_container_unit,
    umami_postgres_container_unit,
    umami_route,
)


def _database_url(prior) -> str:
    return (
        f"postgresql://{prior['POSTGRES_USER']}:{prior['POSTGRES_PASSWORD']}"
        f"@umami-postgres:5432/{prior['POSTGRES_DB']}"
    )


UMAMI = ServiceDescriptor(
    name='umami',
    display_name='Umami Analytics',
    networks=['umami', 'addon'],
    containers=['umami-postgres', 'umami'],
    volumes=['umami-postgres-data', 'umami-data'],
    dependencies=['caddy', 'authelia'],
    secrets={
        'POSTGRES_DB': 'umami',
        'POSTGRES_USER': 'umami',
        'POSTGRES_PASSWORD': lambda prior: generate_password(),
        'APP_SECRET': lambda prior: generate_secret(),
        'DATABASE_URL': _database_url,
    },
    caddyfile=umami_route,
    templates={
        'containers': {
            'umami-postgres': umami_postgres_container_unit,
            'umami': umami_container_unit,
        },
        'volumes': {
            'umami-postgres-data': volume_unit('umami-postgres-data', '5G'),
            'umami-data': volume_unit('umami-data', '1G'),
        },
        'networks': {
            'umami': network_unit('umami'),
        },
    },
)
