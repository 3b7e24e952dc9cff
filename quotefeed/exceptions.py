"""Exception hierarchy."""


class QuotefeedError(Exception):
    """Base class for all quotefeed errors."""


class ProviderError(QuotefeedError):
    """A historical provider's listing request failed."""

    def __init__(self, provider_key: str, message: str) -> None:
        """Initialize provider error."""
        super().__init__(f"{provider_key}: {message}")
        self.provider_key = provider_key


class ExtractionError(QuotefeedError):
    """The quote extraction collaborator failed."""


class SuggestionNotFoundError(QuotefeedError):
    """No taxonomy suggestion with the requested id."""


class SuggestionStateError(QuotefeedError):
    """A taxonomy suggestion is not in a state that allows the operation."""
