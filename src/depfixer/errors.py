"""Depfixer exception hierarchy.

All depfixer-specific exceptions inherit from DepfixerError,
enabling structured error handling and cleaner catch clauses.
"""


class DepfixerError(Exception):
    """Base exception for all depfixer errors."""

    def __init__(self, message: str = "", *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class LabelResolutionError(DepfixerError):
    """Raw target identifier has no existing package directory prefix."""

    def __init__(self, message: str = "", *, identifier: str = "", path: str | None = None) -> None:
        super().__init__(message, path=path)
        self.identifier = identifier


class ArchiveError(DepfixerError):
    """Build output archive could not be opened or read."""


class CacheFormatError(DepfixerError):
    """Persisted index is incompatible with this run (version, branch or body)."""


class VcsError(DepfixerError):
    """A git command against the private index repository failed."""

    def __init__(
        self,
        message: str = "",
        *,
        command: list[str] | None = None,
        exit_code: int | None = None,
        stdout: str = "",
        stderr: str = "",
        path: str | None = None,
    ) -> None:
        super().__init__(message, path=path)
        self.command = list(command or [])
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr


class ConfigError(DepfixerError):
    """Invalid or missing configuration."""
