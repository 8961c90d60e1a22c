"""Unit and route templates for the Umami Analytics addon."""
from typing import Any

from blueprint.templates import render
from blueprint.templates.caddy import FORWARD_AUTH

UMAMI_CONTAINER_UNIT = """[Unit]
Description=Umami Analytics
After=network-online.target umami-postgres.service
Requires=umami-postgres.service

[Container]
ContainerName=umami
Image=ghcr.io/umami-software/umami:postgresql-latest
Volume=umami-data.volume:/app/data
Network=umami.network
Network=addon.network
HealthCmd=curl -f http://localhost:3000/api/heartbeat || exit 1
HealthInterval=5s
HealthTimeout=5s
HealthRetries=5

# Database connection string constructed from secrets
Secret=UMAMI_APP_SECRET,type=env,target=APP_SECRET
Secret=UMAMI_DATABASE_URL,type=env,target=DATABASE_URL
Environment=DATABASE_TYPE=postgresql
{% if shared_smtp is defined and shared_smtp %}

# Deployment mail relay
Secret=UMAMI_SMTP_HOST,type=env,target=SMTP_HOST
Secret=UMAMI_SMTP_PORT,type=env,target=SMTP_PORT
Secret=UMAMI_SMTP_USERNAME,type=env,target=SMTP_USERNAME
Secret=UMAMI_SMTP_PASSWORD,type=env,target=SMTP_PASSWORD
Secret=UMAMI_SMTP_SENDER,type=env,target=SMTP_SENDER
{% endif %}

[Service]
Restart=always
RestartSec=5s
TimeoutStartSec=900

[Install]
WantedBy=default.target
"""

UMAMI_POSTGRES_CONTAINER_UNIT = """[Unit]
Description=PostgreSQL Database for Umami Analytics
After=network-online.target umami-network.service
Before=umami.service

[Container]
ContainerName=umami-postgres
Image=docker.io/library/postgres:15-alpine
Volume=umami-postgres-data.volume:/var/lib/postgresql/data
Network=umami.network
HealthCmd=pg_isready -U umami -d umami
HealthInterval=5s
HealthTimeout=5s
HealthRetries=5

# Database credentials from podman secrets (prefixed with UMAMI_)
Secret=UMAMI_POSTGRES_DB,type=env,target=POSTGRES_DB
Secret=UMAMI_POSTGRES_USER,type=env,target=POSTGRES_USER
Secret=UMAMI_POSTGRES_PASSWORD,type=env,target=POSTGRES_PASSWORD

[Service]
Restart=always
RestartSec=5s
TimeoutStartSec=900

[Install]
WantedBy=default.target
"""

UMAMI_ROUTE = """# Umami Analytics
analytics.{{ domain }} {
""" + FORWARD_AUTH + """
    reverse_proxy umami:3000
    log
}
"""


def umami_container_unit(config: Any = None) -> str:
    return render(UMAMI_CONTAINER_UNIT, config)


def umami_postgres_container_unit(config: Any = None) -> str:
    return render(UMAMI_POSTGRES_CONTAINER_UNIT, config)


def umami_route(config: Any) -> str:
    return render(UMAMI_ROUTE, config)
