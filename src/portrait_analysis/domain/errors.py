"""Domain errors raised by the analysis pipeline."""


class AnalysisPipelineError(Exception):
    """Base class for pipeline errors."""


class InvalidPhotoCountError(AnalysisPipelineError):
    """Photo count does not fit the requested analysis variant."""

    def __init__(self, variant: str, count: int, low: int, high: int) -> None:
        super().__init__(
            f"Invalid photo count for {variant} analysis: {count}. "
            f"Must be between {low} and {high} photos."
        )
        self.variant = variant
        self.count = count


class MediaDownloadError(AnalysisPipelineError):
    """A user-submitted file could not be fetched from the platform."""


class InsufficientCreditsError(AnalysisPipelineError):
    """User balance does not cover the requested debit."""


class UserNotFoundError(AnalysisPipelineError):
    """Referenced user does not exist."""


class CompositionError(AnalysisPipelineError):
    """Image composition failed."""
