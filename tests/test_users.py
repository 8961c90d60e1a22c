"""Tests for the Authelia users database."""
import pytest
import yaml

from blueprint.core.errors import UserExistsError, UserNotFoundError
from blueprint.core.users import (
    UserDatabase,
    validate_email,
    validate_user_password,
    validate_username,
)

DIGEST = "$argon2id$v=19$m=65536,t=3,p=4$c2FsdA$aGFzaA"


@pytest.fixture
def database(deploy_dir):
    return UserDatabase.for_deployment(deploy_dir)


class TestValidators:
    """Test user field validation."""

    def test_valid(self):
        assert validate_username("alice.smith") is None
        assert validate_user_password("longenough") is None
        assert validate_email("alice@example.com") is None

    @pytest.mark.parametrize("username", ["", "alice smith", "alice/../root"])
    def test_bad_usernames(self, username):
        assert validate_username(username)

    def test_short_password(self):
        assert "at least 8" in validate_user_password("short")

    def test_bad_email(self):
        assert validate_email("alice")


class TestUserDatabase:
    """Test UserDatabase against a file in a deployment."""

    def test_location(self, database, deploy_dir):
        assert database.path == deploy_dir / "containers" / "authelia-config" / "users_database.yml"
        assert not database.exists()

    def test_add_and_list(self, database):
        database.add_user("bob", DIGEST, "bob@example.com", ["users", "dev"], "Bob")
        database.add_user("alice", DIGEST, "alice@example.com")

        users = database.list_users()
        assert [u.username for u in users] == ["alice", "bob"]
        assert users[0].groups == ["users"]
        assert users[0].displayname == "alice"
        assert users[1].displayname == "Bob"

        data = yaml.safe_load(database.path.read_text())
        assert data["users"]["bob"]["password"] == DIGEST
        assert data["users"]["bob"]["groups"] == ["users", "dev"]
        assert database.path.stat().st_mode & 0o777 == 0o600

    def test_add_existing(self, database):
        database.add_user("alice", DIGEST, "alice@example.com")
        with pytest.raises(UserExistsError, match="alice"):
            database.add_user("alice", DIGEST, "other@example.com")

    def test_keeps_existing_entries(self, database):
        database.path.parent.mkdir(parents=True)
        database.path.write_text(yaml.safe_dump({"users": {"admin": {
            "displayname": "Administrator",
            "password": "old",
            "email": "admin@example.com",
            "groups": ["admins"],
        }}}))

        database.add_user("alice", DIGEST, "alice@example.com")

        admin = database.get("admin")
        assert admin.groups == ["admins"]
        assert admin.disabled is False

    def test_remove(self, database):
        database.add_user("alice", DIGEST, "alice@example.com")
        database.remove_user("alice")

        assert database.list_users() == []
        with pytest.raises(UserNotFoundError):
            database.remove_user("alice")

    def test_set_password(self, database):
        database.add_user("alice", DIGEST, "alice@example.com")
        database.set_password("alice", "new-digest")

        data = yaml.safe_load(database.path.read_text())
        assert data["users"]["alice"]["password"] == "new-digest"
        assert data["users"]["alice"]["email"] == "alice@example.com"

    def test_set_password_unknown_user(self, database):
        with pytest.raises(UserNotFoundError):
            database.set_password("ghost", DIGEST)

    def test_malformed_file(self, database):
        database.path.parent.mkdir(parents=True)
        database.path.write_text("- just\n- a list\n")

        with pytest.raises(ValueError, match="users database"):
            database.list_users()
