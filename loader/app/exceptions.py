"""Errors raised by the churn event loader."""


class LoaderError(Exception):
    """Base exception for the loader."""

    pass


class FatalLoadError(LoaderError):
    """Raised when the run has to stop. ``stage`` names the step that failed."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage} failed: {message}")
        self.stage = stage


class StatementClosedError(LoaderError):
    """Raised when a prepared insert is used after close or on a dead connection."""

    pass
