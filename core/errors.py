"""Source exceptions with machine-readable codes."""


class SourceError(Exception):
    """Base exception with machine-readable code for source failures."""

    def __init__(self, message: str, *, error_code: str):
        super().__init__(message)
        self.error_code = error_code


class StaleChapterUrlError(SourceError):
    """Raised when a saved chapter still uses the pre-series URL format."""

    def __init__(self, message: str = "Please refresh the chapter list before reading."):
        super().__init__(message, error_code="stale_chapter_url")


class ChapterPagesNotFoundError(SourceError):
    """Raised when the reader page carries no pages payload."""

    def __init__(self, message: str = "Failed to find chapter pages"):
        super().__init__(message, error_code="chapter_pages_not_found")


class PagePayloadError(SourceError):
    """Raised when the pages payload was found but could not be decoded."""

    def __init__(self, message: str = "Failed to decode chapter pages"):
        super().__init__(message, error_code="chapter_pages_malformed")


class CloudflareChallengeError(SourceError):
    def __init__(self, message: str = "Cloudflare challenge detected, open the site in a browser first"):
        super().__init__(message, error_code="cloudflare_challenge")


class SourceHttpError(SourceError):
    def __init__(self, message: str, *, status_code: int):
        super().__init__(message, error_code="http_error")
        self.status_code = status_code
