from __future__ import annotations

CLOUDFLARE_MARKERS = (
    "cf-browser-verification",
    "challenge-platform",
    "cf-chl-",
    "attention required",
    "just a moment",
)


def looks_like_challenge(html: str, status_code: int | None = None) -> bool:
    """Cloudflare interstitials come back as 403/503 with one of the markers."""
    if not html:
        return False
    if status_code is not None and status_code not in (403, 503):
        return False
    content = html.lower()
    return any(marker in content for marker in CLOUDFLARE_MARKERS)
