"""Error taxonomy for translation runs."""

from typing import Optional


class TranslationError(Exception):
    """Base class for errors raised by the translator package."""

    pass


class ConfigurationError(TranslationError):
    """Missing or malformed configuration (API key, batch size). The run never starts."""

    pass


class NoWorkError(TranslationError):
    """No entry matched the selected mode. The run never starts."""

    def __init__(self, mode: str):
        self.mode = mode
        super().__init__(f"Nothing to translate: no entries match mode '{mode}'.")


class PersistenceError(TranslationError):
    """A checkpoint or document could not be written to disk."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(
            f"Failed to save translations to {path}: {reason}. "
            f"Translated text is kept in memory; save again once the problem is fixed."
        )


class ProviderError(TranslationError):
    """A translation provider rejected or failed a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class DocumentLoadError(TranslationError):
    """A JSON document could not be read or is not a JSON object."""

    pass
