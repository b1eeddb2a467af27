"""Photo normalization - collect, rank and de-duplicate listing photo URLs."""

from typing import Any, Iterable, Optional, Sequence

from matchdesk.models.listing import ListingPhoto
from matchdesk.services.payload_fields import FieldExtractor, fields, first_value, safe_str

# Array-valued payload keys, probed in order
PHOTO_ARRAY_KEYS = ("PhotoUrls", "photoUrls", "Photos", "photos", "Media", "media")

# URL field names seen on photo objects inside those arrays
PHOTO_OBJECT_URL_KEYS = (
    "Url", "url",
    "MediaURL", "MediaUrl", "mediaUrl", "mediaURL",
    "Uri", "uri",
    "LargeUrl", "largeUrl",
)

PRIMARY_PHOTO_EXTRACTORS: list[FieldExtractor] = fields(
    "PrimaryPhotoUrl", "primaryPhotoUrl", "ThumbnailUrl", "thumbnailUrl",
)

PHOTO_OBJECT_URL_EXTRACTORS: list[FieldExtractor] = fields(*PHOTO_OBJECT_URL_KEYS)

RESIZE_HINTS = ("width=", "w=", "height=", "h=", "resize", "fit=")


def canonical_photo_key(url: str) -> str:
    """Photo URL with fragment and query string removed."""
    return url.split("#", 1)[0].split("?", 1)[0]


def photo_quality_penalty(url: str) -> int:
    """Lower is better. Thumbnails and resized variants rank after originals."""
    lowered = url.lower()
    penalty = 0
    if "thumbnail" in lowered or "thumb" in lowered:
        penalty += 50
    if "small" in lowered or "tiny" in lowered:
        penalty += 20
    if any(hint in lowered for hint in RESIZE_HINTS):
        penalty += 15
    if "large" in lowered or "full" in lowered:
        penalty -= 10
    return penalty


def _photo_url(item: Any) -> Optional[str]:
    if isinstance(item, dict):
        return first_value(PHOTO_OBJECT_URL_EXTRACTORS, item, safe_str)
    return safe_str(item)


def extract_payload_photos(raw_payload: Optional[dict]) -> list[str]:
    """Candidate photo URLs from every known payload shape, in probe order."""
    if not isinstance(raw_payload, dict):
        return []

    urls: list[str] = []
    for key in PHOTO_ARRAY_KEYS:
        items = raw_payload.get(key)
        if not isinstance(items, list):
            continue
        for item in items:
            url = _photo_url(item)
            if url:
                urls.append(url)

    for extractor in PRIMARY_PHOTO_EXTRACTORS:
        url = safe_str(extractor.extract(raw_payload))
        if url:
            urls.append(url)

    return urls


def normalize_photos(table_urls: Sequence[str], raw_payload: Optional[dict] = None) -> list[str]:
    """
    Build the display list of photos for a listing.

    Photo-store URLs are used exclusively when present; otherwise URLs are
    pulled from the raw payload. The result is ordered best quality first and
    holds one URL per canonical key (the best-ranked variant).
    """
    candidates = [url for url in (safe_str(u) for u in table_urls or ()) if url]
    if not candidates:
        candidates = extract_payload_photos(raw_payload)

    # sorted() is stable, so equal penalties keep their input order
    ranked = sorted(candidates, key=photo_quality_penalty)

    seen: set[str] = set()
    photos: list[str] = []
    for url in ranked:
        key = canonical_photo_key(url)
        if key in seen:
            continue
        seen.add(key)
        photos.append(url)
    return photos


def best_photo_url(photos: Sequence[str], raw_payload: Optional[dict] = None) -> Optional[str]:
    """First normalized photo, else the payload's primary/thumbnail field."""
    if photos:
        return photos[0]
    return first_value(PRIMARY_PHOTO_EXTRACTORS, raw_payload, safe_str)


def photo_urls_from_rows(rows: Iterable[ListingPhoto]) -> list[str]:
    """URLs of photo-store rows in sort_order; rows without an order go last."""
    ordered = sorted(
        rows,
        key=lambda row: (row.sort_order is None, row.sort_order if row.sort_order is not None else 0),
    )
    return [row.url for row in ordered]
