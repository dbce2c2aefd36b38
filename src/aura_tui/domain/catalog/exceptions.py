"""Catalog-specific exceptions for error handling."""


class CatalogError(Exception):
    """Base exception for catalog operations."""

    pass


class SearchError(CatalogError):
    """Raised when a catalog search fails or times out."""

    pass


class ResolutionError(CatalogError):
    """Raised when a direct stream URL cannot be resolved for a track."""

    def __init__(self, track_id: str, message: str = None):
        self.track_id = track_id
        super().__init__(message or f"Could not resolve stream for {track_id}")


class CatalogTimeoutError(CatalogError):
    """Raised when a catalog call exceeds its time budget."""

    pass
