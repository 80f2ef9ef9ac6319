"""
Error Types

Configuration problems are fatal and raised at startup. Backend failures are
returned to callers as values and never raised across the client boundary.
"""

from dataclasses import dataclass, field
from typing import Any


class ConfigurationError(RuntimeError):
    """Required configuration is missing or invalid."""

    def __init__(self, missing=(), message=None):
        self.missing = list(missing)
        super().__init__(message or 'Missing required configuration: ' + ', '.join(self.missing))


@dataclass
class BackendError:
    """A single failed call against the hosted backend."""

    message: str
    status_code: int | None = None
    code: str | None = None
    details: Any = field(default=None, repr=False)

    def __str__(self):
        if self.status_code:
            return f'{self.message} (HTTP {self.status_code})'
        return self.message
