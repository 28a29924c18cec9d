"""git-account - switch git identities per repository."""

from gitaccount.gitconfig import GitConfigBridge
from gitaccount.profile import ProfileStore, User
from gitaccount.version import __version__

__all__ = ["GitConfigBridge", "ProfileStore", "User", "__version__"]
