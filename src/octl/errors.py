"""Domain errors for octl."""

from typing import Optional


class SetupError(RuntimeError):
    """Raised when a setup operation cannot continue safely."""


class PrerequisiteError(SetupError):
    """Raised when a required local tool or CLI login is missing."""


class ProviderError(SetupError):
    """Raised when a provider API rejects a request."""

    def __init__(self, operation: str, status_code: Optional[int] = None, body: str = ""):
        self.operation = operation
        self.status_code = status_code
        self.body = body
        detail = f" ({status_code})" if status_code is not None else ""
        super().__init__(f"{operation} failed{detail}: {body or 'no details'}")


class SetupCancelled(Exception):
    """Raised when the run is interrupted by a termination signal."""

    def __init__(self, signum: int):
        self.signum = signum
        super().__init__(f"Interrupted by signal {signum}")
