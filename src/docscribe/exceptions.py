"""Exception hierarchy for docscribe.

Per-symbol provider failures are captured as data by the generator; the
exceptions here cross component boundaries and end up as terminal run states.
"""


class DocscribeError(Exception):
    """Base class for all docscribe errors."""


class ConfigurationError(DocscribeError):
    """Raised when configuration is invalid or no provider is usable."""


class ProviderError(DocscribeError):
    """Raised when a generation provider call fails.

    Attributes:
        provider: Name of the provider that failed
        status_code: HTTP status reported by the provider, if any
    """

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class GenerationCancelledError(DocscribeError):
    """Raised when a batch is cancelled while work is waiting or in flight."""


class AnalysisError(DocscribeError):
    """Raised when a project cannot be analyzed at all."""


class BackupError(DocscribeError):
    """Raised when a backup cannot be created or read."""
