"""URL classification utilities."""

from ..models.bookmark import MediaType

# Checked in order; the first group with a matching marker wins.
GIF_MARKERS = ("gif",)
VIDEO_MARKERS = (".mp4", "video")
IMAGE_MARKERS = (".jpg", ".jpeg", ".png", ".webp", "pbs.twimg.com")


def classify_media_url(url: str) -> MediaType:
    """Infer media type from URL patterns.

    Args:
        url: Media URL

    Returns:
        MediaType for the URL

    Example:
        "https://pbs.twimg.com/media/abc?format=jpg" -> MediaType.IMAGE
        "https://video.twimg.com/ext_tw_video/1/pu/vid/clip.mp4" -> MediaType.VIDEO
        "https://pbs.twimg.com/tweet_video_thumb/abc.gif" -> MediaType.GIF
    """
    lower = url.lower()

    if any(marker in lower for marker in GIF_MARKERS):
        return MediaType.GIF
    if any(marker in lower for marker in VIDEO_MARKERS):
        return MediaType.VIDEO
    if any(marker in lower for marker in IMAGE_MARKERS):
        return MediaType.IMAGE
    return MediaType.UNKNOWN


def split_delimited(value: str, delimiter: str) -> list[str]:
    """Split inline list text, trimming items and dropping empties.

    No escaping is supported: an item containing the delimiter is split.
    """
    if not value:
        return []
    return [item.strip() for item in value.split(delimiter) if item.strip()]
