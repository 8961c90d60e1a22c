"""Quadlet unit templates for the base stack (Caddy, Authelia, PostgreSQL)."""
from typing import Any

from blueprint.templates import render

NETWORK_UNIT = """[Network]
NetworkName={{ network }}
"""

VOLUME_UNIT = """[Volume]
VolumeName={{ volume }}
{% if size %}
VolumeSize={{ size }}
{% endif %}
"""

CADDY_CONTAINER_UNIT = """[Unit]
Description=Caddy Web Server
After=network-online.target caddy.socket core-network.service addon-network.service
Requires=caddy.socket core-network.service addon-network.service

[Container]
ContainerName=caddy
Image=docker.io/library/caddy:2-alpine
Volume=caddy-data.volume:/data
Volume=caddy-config.volume:/config
Volume={{ containers_dir }}/Caddyfile:/etc/caddy/Caddyfile:ro,z
Volume={{ containers_dir }}/caddyfiles:/etc/caddy/caddyfiles:ro,z
Network=core.network
Network=addon.network
Exec=/usr/bin/caddy run --config /etc/caddy/Caddyfile --adapter caddyfile

[Service]
Restart=always
RestartSec=5s
TimeoutStartSec=900

[Install]
WantedBy=default.target
"""

CADDY_SOCKET_UNIT = """[Unit]
Description=Caddy Web Server Socket

[Socket]
BindIPv6Only=both

### Sockets for the HTTP reverse proxy
# fd/3 - HTTP port 80
ListenStream=[::]:80

# fd/4 - HTTPS port 443 (TCP)
ListenStream=[::]:443

# fdgram/5 - HTTPS port 443 (UDP for QUIC/H3)
ListenDatagram=[::]:443

[Install]
WantedBy=sockets.target
"""

AUTHELIA_CONTAINER_UNIT = """[Unit]
Description=Authelia Authentication Server
After=network-online.target authelia-postgres.service
Wants=network-online.target
Requires=authelia-postgres.service

[Container]
ContainerName=authelia
Image={{ image }}
Volume={{ containers_dir }}/authelia-config:/config:ro,z
Volume=authelia-data.volume:/data
Network=core.network
Secret=AUTHELIA_JWT_SECRET,type=env,target=AUTHELIA_IDENTITY_VALIDATION_RESET_PASSWORD_JWT_SECRET
Secret=AUTHELIA_SESSION_SECRET,type=env,target=AUTHELIA_SESSION_SECRET
Secret=AUTHELIA_STORAGE_ENCRYPTION_KEY,type=env,target=AUTHELIA_STORAGE_ENCRYPTION_KEY
Secret=AUTHELIA_POSTGRES_DB,type=env,target=AUTHELIA_STORAGE_POSTGRES_DATABASE
Secret=AUTHELIA_POSTGRES_USER,type=env,target=AUTHELIA_STORAGE_POSTGRES_USERNAME
Secret=AUTHELIA_POSTGRES_PASSWORD,type=env,target=AUTHELIA_STORAGE_POSTGRES_PASSWORD
Secret=SMTP_ADDRESS,type=env,target=AUTHELIA_NOTIFIER_SMTP_ADDRESS
Secret=SMTP_USERNAME,type=env,target=AUTHELIA_NOTIFIER_SMTP_USERNAME
Secret=SMTP_PASSWORD,type=env,target=AUTHELIA_NOTIFIER_SMTP_PASSWORD
Secret=SMTP_SENDER,type=env,target=AUTHELIA_NOTIFIER_SMTP_SENDER

[Service]
Restart=always
RestartSec=5s
TimeoutStartSec=60s

[Install]
WantedBy=default.target
"""

AUTHELIA_POSTGRES_CONTAINER_UNIT = """[Unit]
Description=PostgreSQL Database for Authelia
After=network-online.target core-network.service
Wants=network-online.target

[Container]
ContainerName=authelia-postgres
Image=docker.io/library/postgres:15-alpine
Volume=authelia-postgres-data.volume:/var/lib/postgresql/data
Network=core.network
Environment=POSTGRES_INITDB_ARGS=--auth-host=scram-sha-256
Secret=AUTHELIA_POSTGRES_DB,type=env,target=POSTGRES_DB
Secret=AUTHELIA_POSTGRES_USER,type=env,target=POSTGRES_USER
Secret=AUTHELIA_POSTGRES_PASSWORD,type=env,target=POSTGRES_PASSWORD

[Service]
Restart=always
RestartSec=5s
TimeoutStartSec=60s

[Install]
WantedBy=default.target
"""


def network_unit(network: str) -> str:
    return render(NETWORK_UNIT, network=network)


def volume_unit(volume: str, size: str = None) -> str:
    """Named volume so ``podman volume rm {volume}`` finds it later."""
    return render(VOLUME_UNIT, volume=volume, size=size)


def caddy_container_unit(config: Any, containers_dir: str) -> str:
    return render(CADDY_CONTAINER_UNIT, config, containers_dir=containers_dir)


def authelia_container_unit(config: Any, containers_dir: str, image: str) -> str:
    return render(AUTHELIA_CONTAINER_UNIT, config, containers_dir=containers_dir, image=image)


def authelia_postgres_container_unit(config: Any = None) -> str:
    return render(AUTHELIA_POSTGRES_CONTAINER_UNIT, config)
