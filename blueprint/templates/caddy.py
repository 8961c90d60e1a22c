"""Caddyfile template for the shared reverse proxy."""
from typing import Any, List

from blueprint.core.units import FRAGMENT_SUFFIX
from blueprint.templates import render

CADDYFILE = """{
    # Default bindings for socket activation
    # fd/3: HTTP port 80
    # fd/4: HTTPS port 443 (TCP for H1/H2)
    # fdgram/5: HTTPS port 443 (UDP for H3/QUIC)
    default_bind fd/4 {
        protocols h1 h2
    }
    default_bind fdgram/5 {
        protocols h3
    }
    admin off
{% if not use_https %}
    auto_https off
{% endif %}
    email {{ email }}
}

# HTTP redirect to HTTPS (port 80 via fd/3)
http:// {
    bind fd/3 {
        protocols h1 h2
    }
    redir https://{host}{uri} permanent
    log
}

# Main domain
{{ domain }} {
    respond "Hello from {{ name }}!"

    handle /health {
        respond "OK" 200
    }
    log
}

# Authelia portal
auth.{{ domain }}, admin.{{ domain }} {
    reverse_proxy authelia:9091
    log
}

# Localhost for testing (HTTPS with internal cert)
https://localhost {
    tls internal
    respond "Welcome to {{ name }}! Server is running locally."

    handle /health {
        respond "OK" 200
    }
    log
}

# Addon routes, one fragment per installed addon
import /etc/caddy/caddyfiles/*.{{ fragment_suffix }}
"""

# Snippet addon fragments use to put a route behind Authelia
FORWARD_AUTH = """    forward_auth authelia:9091 {
        uri /api/authz/forward-auth?authelia_url=https://auth.{{ domain }}
        copy_headers Remote-User Remote-Groups Remote-Name Remote-Email
    }
"""


def caddyfile(config: Any) -> str:
    return render(CADDYFILE, config, fragment_suffix=FRAGMENT_SUFFIX)


def forward_auth(config: Any) -> str:
    return render(FORWARD_AUTH, config)


DOMAIN_ROUTE = """# Domain route: {{ site }}
{{ site }} {
{% if require_auth %}
""" + FORWARD_AUTH + """
{% endif %}
{% if path != "/" %}
    handle {{ path }}* {
{% for line in body %}
        {{ line }}
{% endfor %}
    }
{% else %}
{% for line in body %}
    {{ line }}
{% endfor %}
{% endif %}
    log
}
"""


def domain_route(config: Any, site: str, body: List[str], path: str = "/", require_auth: bool = False) -> str:
    """Site block for an extra domain; ``config`` supplies the Authelia portal domain."""
    return render(DOMAIN_ROUTE, config, site=site, body=body, path=path, require_auth=require_auth)
