"""Custom exceptions for git-account."""


class GitAccountError(Exception):
    """Base exception for git-account."""

    def __init__(self, message: str, details: str | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class FileReadError(GitAccountError):
    """A profile or config file is missing or unreadable."""


class ParseError(GitAccountError):
    """Malformed JSON or INI content."""


class ConfigReadError(FileReadError):
    """A git config file could not be read."""


class ConfigParseError(ConfigReadError, ParseError):
    """A git config file exists but is not valid INI."""


class ProfileError(GitAccountError):
    """Profile-related errors."""

    def __init__(self, message: str, profile_id: str | None = None) -> None:
        self.profile_id = profile_id
        super().__init__(message)


class MissingRemoteError(GitAccountError):
    """The origin remote or its private key path is not configured."""


class MissingFieldError(GitAccountError):
    """A required identity field is absent from the combined config."""


class ConfigWriteError(GitAccountError):
    """`git config` refused to write a value."""


class SubprocessError(GitAccountError):
    """A wrapped command failed or could not be started."""
