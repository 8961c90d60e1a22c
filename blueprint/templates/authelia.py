"""Authelia configuration and users database documents."""
from typing import Any, Dict

import yaml


def authelia_configuration(config: Any) -> Dict[str, Any]:
    """configuration.yml contents.

    Secrets (JWT, session, storage key, database and SMTP credentials) are
    injected as AUTHELIA_* environment variables from podman secrets, so they
    never appear here.
    """
    return {
        'server': {
            'address': 'tcp://0.0.0.0:9091/',
        },
        'log': {
            'level': 'info',
            'format': 'text',
        },
        'totp': {
            'issuer': config.name,
        },
        'authentication_backend': {
            'file': {
                'path': '/config/users_database.yml',
                'password': {
                    'algorithm': 'argon2',
                    'argon2': {
                        'variant': 'argon2id',
                        'iterations': 3,
                        'salt_length': 16,
                        'parallelism': 4,
                        'memory': 65536,
                    },
                },
            },
        },
        'access_control': {
            'default_policy': 'deny',
            'rules': [
                {'domain': config.domain, 'policy': 'one_factor'},
                {'domain': f'*.{config.domain}', 'policy': 'one_factor'},
            ],
        },
        'session': {
            'name': 'authelia_session',
            'expiration': '1h',
            'inactivity': '5m',
            'cookies': [
                {
                    'domain': config.domain,
                    'authelia_url': f'https://auth.{config.domain}',
                    'default_redirection_url': f'https://{config.domain}',
                },
            ],
        },
        'regulation': {
            'max_retries': 3,
            'find_time': '120s',
            'ban_time': '300s',
        },
        'storage': {
            'postgres': {
                'address': 'tcp://authelia-postgres:5432',
            },
        },
        'notifier': {
            'disable_startup_check': False,
            'smtp': {
                'tls': {
                    'skip_verify': False,
                    'minimum_version': 'TLS1.2',
                },
            },
        },
    }


def users_database(config: Any, password_hash: str) -> Dict[str, Any]:
    """users_database.yml contents with the initial admin account."""
    return {
        'users': {
            config.admin_username: {
                'disabled': False,
                'displayname': config.admin_display_name,
                'password': password_hash,
                'email': config.email,
                'groups': ['admins', 'users'],
            },
        },
    }


def dump_yaml(document: Dict[str, Any]) -> str:
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False, width=1000)
