from __future__ import annotations

from typing import Optional


class ResearchError(RuntimeError):
    """Base for every error the CLI turns into exit code 1."""


class ConfigError(ResearchError):
    pass


class FileError(ResearchError):
    pass


class InputFileError(FileError):
    pass


class ReportWriteError(FileError):
    pass


class CredentialError(ResearchError):
    pass


class RemoteError(ResearchError):
    """Falha de um lookup remoto. Recuperável: o registo fica com sentinelas."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(RemoteError):
    pass


class RetriesExhaustedError(RemoteError):
    pass
