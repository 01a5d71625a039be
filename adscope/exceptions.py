class InputRejected(Exception):
    """Raised when an upload is missing or is neither a video nor an image."""


class StagingFailure(Exception):
    """Raised when an upload cannot be written to transient storage."""


class CleanupFailure(Exception):
    """Raised when a staged upload cannot be removed."""


class IntegrationError(Exception):
    """Raised when an external API call fails."""


class AnalysisFailure(IntegrationError):
    """Raised when the media understanding service is unreachable or returns unusable output."""


class EnrichmentFailure(IntegrationError):
    """Raised when the copy generation service fails."""


class PersistenceFailure(Exception):
    """Raised when the saved-results backing medium cannot be read or written."""
