"""Service-layer exceptions."""


class ProgressLoadError(Exception):
    """Raised when a persisted progress payload cannot be restored."""
