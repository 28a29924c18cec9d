"""Profile storage for git-account."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, List

from .exceptions import FileReadError, GitAccountError, ParseError, ProfileError

logger = logging.getLogger(__name__)

PROFILES_FILENAME = ".git-account"
PROFILES_ENV = "GIT_ACCOUNT_FILE"


def default_profiles_path() -> Path:
    """Return the profile file location, honouring GIT_ACCOUNT_FILE."""
    override = os.environ.get(PROFILES_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / PROFILES_FILENAME


@dataclass(frozen=True)
class User:
    """A stored git identity."""
    id: Optional[str]
    name: str
    email: str
    private_key: str
    gpg_key: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert user to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "privateKey": self.private_key,
            "gpgKey": self.gpg_key,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        """Create user from dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            email=data["email"],
            private_key=data["privateKey"],
            gpg_key=data.get("gpgKey"),
        )

    def same_identity(self, other: "User") -> bool:
        """Compare everything except the id. A missing GPG key matches an empty one."""
        return (
            self.name == other.name
            and self.email == other.email
            and self.private_key == other.private_key
            and (self.gpg_key or None) == (other.gpg_key or None)
        )


class ProfileStore:
    """Manages the list of stored users.

    The file is re-read on every operation; nothing is cached between calls.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        """Initialize profile store.

        Args:
            path: Location of the JSON profile list (default: ~/.git-account)
        """
        self.path = path or default_profiles_path()

    def load(self) -> List[User]:
        """Load users from disk, creating an empty list if absent."""
        if not self.path.exists():
            logger.debug(f"Initializing empty profile list at {self.path}")
            self.write([])
            return []

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ParseError(f"Failed to parse {self.path}: {e}") from e
        except UnicodeDecodeError as e:
            raise ParseError(f"{self.path} is not valid UTF-8: {e}") from e
        except OSError as e:
            raise FileReadError(f"Failed to read {self.path}: {e}") from e

        if not isinstance(data, list):
            raise ParseError(f"Failed to parse {self.path}: expected a JSON list")
        try:
            return [User.from_dict(item) for item in data]
        except (KeyError, TypeError) as e:
            raise ParseError(f"Invalid profile entry in {self.path}: {e}") from e

    def write(self, users: List[User]) -> List[User]:
        """Write users to disk, replacing the file in one rename."""
        data = json.dumps([user.to_dict() for user in users], indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f"{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(data)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise GitAccountError(f"Failed to save profiles: {e}") from e
        logger.debug(f"Saved {len(users)} profile(s) to {self.path}")
        return users

    def add(self, user: User) -> User:
        """Append a user and persist the list.

        Raises:
            ProfileError: If a user with the same id is already stored
        """
        if not user.id:
            raise ProfileError("Profile id cannot be empty")

        users = self.load()
        if any(existing.id == user.id for existing in users):
            raise ProfileError(f"Profile '{user.id}' already exists", profile_id=user.id)

        self.write(users + [user])
        logger.info(f"Added profile {user.id}")
        return user

    def remove(self, user_id: str) -> str:
        """Remove every user with the given id. Unknown ids are ignored."""
        users = self.load()
        remaining = [user for user in users if user.id != user_id]
        self.write(remaining)
        if len(remaining) != len(users):
            logger.info(f"Removed profile {user_id}")
        return user_id

    def get(self, user_id: str) -> User:
        """Get a user by id."""
        for user in self.load():
            if user.id == user_id:
                return user
        raise ProfileError(f"Profile not found: {user_id}", profile_id=user_id)

    def find(self, identity: User) -> Optional[User]:
        """Find the first stored user with the same name, email, SSH key and GPG key."""
        for user in self.load():
            if user.same_identity(identity):
                return user
        return None
