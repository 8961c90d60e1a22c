"""Authelia file-backend users database (users_database.yml)."""
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from blueprint.core.errors import UserExistsError, UserNotFoundError
from blueprint.core.logger import get_logger
from blueprint.core.units import authelia_config_dir
from blueprint.templates.authelia import dump_yaml

logger = get_logger(__name__)

USERS_FILENAME = "users_database.yml"

# Authelia accepts any 8+ character password for regular users
MIN_USER_PASSWORD_LENGTH = 8

DEFAULT_GROUPS = ["users"]

_USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9._-]+$')


def validate_username(username: str) -> Optional[str]:
    if not username:
        return "Username is required"
    if not _USERNAME_PATTERN.match(username):
        return "Username may only contain letters, numbers, dots, hyphens, and underscores"
    return None


def validate_user_password(password: str) -> Optional[str]:
    if not password or len(password) < MIN_USER_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_USER_PASSWORD_LENGTH} characters"
    return None


def validate_email(email: str) -> Optional[str]:
    if not email or "@" not in email:
        return "A valid email address is required"
    return None


@dataclass
class User:
    """One account in the users database."""
    username: str
    displayname: str
    email: str
    groups: List[str] = field(default_factory=list)
    disabled: bool = False


class UserDatabase:
    """Reads and rewrites Authelia's users file.

    The file is rewritten whole on every change and kept at mode 0600, since it
    holds password digests. Authelia only picks up changes after a restart.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    @classmethod
    def for_deployment(cls, deploy_dir: Path) -> "UserDatabase":
        return cls(authelia_config_dir(deploy_dir) / USERS_FILENAME)

    def exists(self) -> bool:
        return self.path.is_file()

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        data = yaml.safe_load(self.path.read_text()) or {}
        if not isinstance(data, dict) or not isinstance(data.get('users') or {}, dict):
            raise ValueError(f"{self.path} is not an Authelia users database")
        return dict(data.get('users') or {})

    def _save(self, users: Dict[str, Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(dump_yaml({'users': users}))
        self.path.chmod(0o600)
        logger.debug(f"Wrote {self.path}")

    def list_users(self) -> List[User]:
        users = []
        for username, entry in sorted(self._load().items()):
            entry = entry or {}
            users.append(User(
                username=username,
                displayname=entry.get('displayname', username),
                email=entry.get('email', ''),
                groups=list(entry.get('groups') or []),
                disabled=bool(entry.get('disabled', False)),
            ))
        return users

    def get(self, username: str) -> User:
        for user in self.list_users():
            if user.username == username:
                return user
        raise UserNotFoundError(username)

    def add_user(
        self,
        username: str,
        password_hash: str,
        email: str,
        groups: Optional[List[str]] = None,
        displayname: Optional[str] = None,
    ) -> User:
        """Add a new account.

        Raises:
            UserExistsError: The username is already taken
        """
        users = self._load()
        if username in users:
            raise UserExistsError(username)

        user = User(
            username=username,
            displayname=displayname or username,
            email=email,
            groups=list(groups or DEFAULT_GROUPS),
        )
        users[username] = {
            'disabled': user.disabled,
            'displayname': user.displayname,
            'password': password_hash,
            'email': user.email,
            'groups': user.groups,
        }
        self._save(users)
        return user

    def remove_user(self, username: str) -> None:
        users = self._load()
        if username not in users:
            raise UserNotFoundError(username)
        del users[username]
        self._save(users)

    def set_password(self, username: str, password_hash: str) -> None:
        users = self._load()
        if username not in users:
            raise UserNotFoundError(username)
        users[username] = dict(users[username] or {}, password=password_hash)
        self._save(users)
