"""Git configuration bridge.

Reads the global and repository git config, merges them, and writes
identity fields into the repository scope. The active identity is never
cached: every call re-reads the config files from disk.
"""

import configparser
import logging
import os
import re
import shlex
import subprocess
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional, Sequence, Union

import git

from .exceptions import (
    ConfigParseError,
    ConfigReadError,
    ConfigWriteError,
    MissingFieldError,
    MissingRemoteError,
    SubprocessError,
)
from .profile import User

logger = logging.getLogger(__name__)

ConfigScope = Literal["global", "local"]
GitConfigTree = Dict[str, Dict[str, str]]

ORIGIN = "origin"
KEY_PATH_OPTION = "gtPrivateKeyPath"

_REMOTE_SECTION = re.compile(r'^remote "(.+?)"$')
# `git config --unset-all` exit status when the key is not set
_GIT_CONFIG_KEY_MISSING = 5
# run_command owns output capture and failure handling
_MANAGED_RUN_OPTIONS = ("capture_output", "check", "stdout", "stderr", "text", "universal_newlines")


def ssh_command(private_key: str) -> str:
    """SSH invocation pinned to a single key."""
    return f"ssh -i {private_key} -oIdentitiesOnly=yes"


def _normalize_section(name: str) -> str:
    # Section names are case-insensitive, subsection names are not.
    head, sep, tail = name.partition(" ")
    return head.lower() + sep + tail


_VALUE_ESCAPES = {"\\": "\\", '"': '"', "n": "\n", "t": "\t", "b": "\b"}


def _decode_value(raw: str) -> str:
    """Undo the quoting and backslash escapes `git config` writes."""
    chars = []
    escaped = False
    for char in raw:
        if escaped:
            chars.append(_VALUE_ESCAPES.get(char, char))
            escaped = False
        elif char == "\\":
            escaped = True
        elif char != '"':
            chars.append(char)
    if escaped:
        chars.append("\\")
    return "".join(chars)


def get_option(section: Optional[Mapping[str, str]], option: str) -> Optional[str]:
    """Look up an option case-insensitively, as git does."""
    if not section:
        return None
    wanted = option.lower()
    for key, value in section.items():
        if key.lower() == wanted:
            return value
    return None


def remote_names(config: GitConfigTree) -> list[str]:
    """Names of all `remote "<name>"` sections, in file order."""
    names = []
    for section in config:
        match = _REMOTE_SECTION.match(section)
        if match:
            names.append(match.group(1))
    return names


def remote_key_paths(config: GitConfigTree) -> Dict[str, str]:
    """Map each remote that carries a private key path to that path."""
    paths = {}
    for name in remote_names(config):
        key_path = get_option(config[f'remote "{name}"'], KEY_PATH_OPTION)
        if key_path:
            paths[name] = key_path
    return paths


def origin_key_path(config: GitConfigTree) -> str:
    """Private key path of the origin remote.

    Only origin is trusted here even though switch_account writes the key to
    every remote.

    Raises:
        MissingRemoteError: If there is no origin remote or it has no key path
    """
    if f'remote "{ORIGIN}"' not in config:
        raise MissingRemoteError(f'No remote "{ORIGIN}" found in git config')
    key_path = remote_key_paths(config).get(ORIGIN)
    if not key_path:
        raise MissingRemoteError(
            f'remote "{ORIGIN}" has no {KEY_PATH_OPTION} configured',
            details="Run `git-account use` in this repository to set one.",
        )
    return key_path


def build_environment(config: GitConfigTree) -> Dict[str, str]:
    """Identity environment for a wrapped git command."""
    key_path = origin_key_path(config)
    user = config.get("user")
    name = get_option(user, "name")
    email = get_option(user, "email")
    if not name or not email:
        raise MissingFieldError("user.name and user.email must both be set")

    return {
        "GIT_SSH_COMMAND": ssh_command(key_path),
        "GIT_COMMITTER_NAME": name,
        "GIT_COMMITTER_EMAIL": email,
        "GIT_AUTHOR_NAME": name,
        "GIT_AUTHOR_EMAIL": email,
    }


def parse_config_file(path: Path) -> GitConfigTree:
    """Parse a git config file into a section -> option -> value tree.

    Args:
        path: Config file to read

    Returns:
        Parsed tree; for repeated options the last value wins
    """
    if not path.is_file() or not os.access(path, os.R_OK):
        raise ConfigReadError(f"Git config not found or unreadable: {path}")

    tree: GitConfigTree = {}
    try:
        with git.GitConfigParser(str(path), read_only=True, merge_includes=False) as parser:
            parser.read()
            for section in parser.sections():
                options = tree.setdefault(_normalize_section(section), {})
                for option, value in parser.items(section):
                    options[option] = _decode_value(value)
    except configparser.Error as e:
        raise ConfigParseError(f"Failed to parse git config {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigParseError(f"Git config {path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise ConfigReadError(f"Failed to read git config {path}: {e}") from e

    logger.debug(f"Read {len(tree)} section(s) from {path}")
    return tree


class GitConfigBridge:
    """Maps stored users onto git configuration for one repository."""

    def __init__(self, repo_dir: Optional[Path] = None, home: Optional[Path] = None) -> None:
        """Initialize the bridge.

        Args:
            repo_dir: Repository (or any directory inside it); default: cwd
            home: Home directory holding .gitconfig; default: Path.home()
        """
        self.repo_dir = Path(repo_dir) if repo_dir else Path.cwd()
        self.home = Path(home) if home else Path.home()

    @property
    def global_config_path(self) -> Path:
        return self.home / ".gitconfig"

    @property
    def local_config_path(self) -> Path:
        """Config file of the repository containing repo_dir."""
        try:
            with git.Repo(self.repo_dir, search_parent_directories=True) as repo:
                return Path(repo.common_dir) / "config"
        except (git.InvalidGitRepositoryError, git.NoSuchPathError) as e:
            raise ConfigReadError(f"Not a git repository: {self.repo_dir}") from e

    def _git_env(self) -> Dict[str, str]:
        # Keep `git config --global` pointed at the same home we read from.
        return {**os.environ, "HOME": str(self.home)}

    def get_global_config(self) -> GitConfigTree:
        return parse_config_file(self.global_config_path)

    def get_local_config(self) -> GitConfigTree:
        return parse_config_file(self.local_config_path)

    def get_combined_config(self) -> GitConfigTree:
        """Global config overlaid section by section with local config."""
        with ThreadPoolExecutor(max_workers=2) as pool:
            global_future = pool.submit(self.get_global_config)
            local_future = pool.submit(self.get_local_config)
            global_config = global_future.result()
            local_config = local_future.result()
        return {**global_config, **local_config}

    def set_config(self, entries: Mapping[str, str], scope: ConfigScope = "local") -> None:
        """Write flat dotted keys one at a time.

        Keys written before a failure stay written.

        Raises:
            ConfigWriteError: If git rejects a key or value
        """
        for key, value in entries.items():
            logger.debug(f"git config --{scope} {key} {value}")
            try:
                subprocess.run(
                    ["git", "config", f"--{scope}", key, value],
                    cwd=self.repo_dir,
                    env=self._git_env(),
                    capture_output=True,
                    text=True,
                    check=True,
                )
            except subprocess.CalledProcessError as e:
                message = e.stderr.strip() or str(e)
                raise ConfigWriteError(f"Failed to set {key}: {message}") from e
            except OSError as e:
                raise ConfigWriteError(f"Failed to set {key}: {e}") from e

    def set_global_config(self, entries: Mapping[str, str]) -> None:
        self.set_config(entries, "global")

    def set_local_config(self, entries: Mapping[str, str]) -> None:
        self.set_config(entries, "local")

    def unset_config(self, keys: Sequence[str], scope: ConfigScope = "local") -> None:
        """Remove every value of each key; keys that are not set are skipped."""
        for key in keys:
            try:
                result = subprocess.run(
                    ["git", "config", f"--{scope}", "--unset-all", key],
                    cwd=self.repo_dir,
                    env=self._git_env(),
                    capture_output=True,
                    text=True,
                )
            except OSError as e:
                raise ConfigWriteError(f"Failed to unset {key}: {e}") from e
            if result.returncode not in (0, _GIT_CONFIG_KEY_MISSING):
                message = result.stderr.strip() or f"exit status {result.returncode}"
                raise ConfigWriteError(f"Failed to unset {key}: {message}")

    def switch_account(self, user: User) -> Dict[str, str]:
        """Write a user's identity into the repository config.

        Every configured remote gets the user's key path. Running this twice
        with the same user leaves the config unchanged the second time.

        Returns:
            The entries written, in write order
        """
        remotes = remote_names(self.get_local_config())
        entries = {
            "user.name": user.name,
            "user.email": user.email,
            "core.sshCommand": ssh_command(user.private_key),
        }
        for remote in remotes:
            entries[f"remote.{remote}.{KEY_PATH_OPTION}"] = user.private_key
        if user.gpg_key:
            entries["user.signingKey"] = user.gpg_key

        self.set_local_config(entries)
        if not user.gpg_key:
            self.unset_config(["user.signingKey"])

        logger.info(f"Switched {self.repo_dir} to {user.name} <{user.email}>")
        return entries

    def get_current_user(self) -> User:
        """Identity derived from the combined config right now."""
        config = self.get_combined_config()
        private_key = origin_key_path(config)
        user = config.get("user")
        name = get_option(user, "name")
        email = get_option(user, "email")
        if not name or not email:
            raise MissingFieldError("user.name and user.email must both be set")

        return User(
            id=None,
            name=name,
            email=email,
            private_key=private_key,
            gpg_key=get_option(user, "signingKey"),
        )

    def run_command(self, command: Union[Sequence[str], str], **options: Any) -> str:
        """Run a command with the current identity's environment.

        Args:
            command: Argument list, or a string split shell-style
            **options: Extra subprocess.run keywords (env, cwd, timeout, input, ...)

        Returns:
            Captured stdout without its trailing newline
        """
        if isinstance(command, str):
            command = shlex.split(command)
        else:
            command = list(command)
        if not command:
            raise SubprocessError("No command given")
        managed = sorted(set(options) & set(_MANAGED_RUN_OPTIONS))
        if managed:
            raise SubprocessError(f"Options not accepted by run_command: {', '.join(managed)}")

        identity_env = build_environment(self.get_combined_config())
        base_env = options.pop("env", None)
        env = {**(os.environ if base_env is None else base_env), **identity_env}
        options.setdefault("cwd", self.repo_dir)

        logger.debug(f"Running {command} as {identity_env['GIT_AUTHOR_NAME']}")
        try:
            result = subprocess.run(
                command,
                env=env,
                capture_output=True,
                text=True,
                check=True,
                **options,
            )
        except (TypeError, ValueError) as e:
            raise SubprocessError(f"Failed to run {command[0]}: {e}") from e
        except subprocess.CalledProcessError as e:
            message = (e.stderr or "").strip() or str(e)
            raise SubprocessError(message, details=" ".join(command)) from e
        except subprocess.TimeoutExpired as e:
            raise SubprocessError(str(e), details=" ".join(command)) from e
        except OSError as e:
            raise SubprocessError(f"Failed to run {command[0]}: {e}") from e

        output = result.stdout
        if output.endswith("\n"):
            output = output[:-1]
            if output.endswith("\r"):
                output = output[:-1]
        return output
