"""
Tweet image lookup: find and download the photos attached to a post.

Uses the public syndication endpoint (no authentication).  Only photo URLs
on the platform's image CDN are ever downloaded.  Callers may pass their
own ``httpx.Client`` (tests use one with a mock transport).
"""

import logging
import re

import httpx

from grid_split_tool.config import (
    HTTP_TIMEOUT,
    HTTP_USER_AGENT,
    TWEET_IMAGE_PREFIX,
    TWEET_IMAGE_SUFFIX,
    TWEET_SYNDICATION_URL,
)

logger = logging.getLogger(__name__)

# twitter.com/<user>/status/<id>, x.com/..., mobile.twitter.com/..., with optional query
_TWEET_URL_RE = re.compile(r"(?:twitter\.com|x\.com)/\w+/status/(\d+)")


class TweetFetchError(RuntimeError):
    """The post or image could not be fetched."""


class TweetNotFoundError(TweetFetchError):
    """The post does not exist, is private, or has no photos."""


def extract_tweet_id(url: str) -> str | None:
    """Return the numeric post id from a post URL, or None if it doesn't match."""
    match = _TWEET_URL_RE.search(url or "")
    return match.group(1) if match else None


def _client(client: httpx.Client | None) -> httpx.Client:
    return client or httpx.Client(
        timeout=HTTP_TIMEOUT,
        headers={"User-Agent": HTTP_USER_AGENT},
        follow_redirects=True,
    )


def _photo_urls(data: dict) -> list[str]:
    """Pull high-resolution photo URLs out of a syndication payload."""
    images = []
    for media in data.get("mediaDetails") or []:
        if media.get("type") == "photo" and media.get("media_url_https"):
            images.append(f"{media['media_url_https']}{TWEET_IMAGE_SUFFIX}")

    # Older payloads only carry a photos array
    if not images:
        for photo in data.get("photos") or []:
            url = photo.get("expandedUrl") or photo.get("url")
            if url and "pbs.twimg.com" in url:
                images.append(f"{url}{TWEET_IMAGE_SUFFIX}")
    return images


def fetch_tweet_images(url: str, client: httpx.Client | None = None) -> list[str]:
    """Return the photo URLs attached to the post at *url*.

    Raises ValueError for a URL that isn't a post link, TweetNotFoundError
    when the post is missing or has no photos, TweetFetchError otherwise.
    """
    tweet_id = extract_tweet_id(url)
    if tweet_id is None:
        raise ValueError(
            "Invalid Twitter/X URL. Expected format: https://twitter.com/user/status/123456789"
        )

    owns_client = client is None
    http = _client(client)
    try:
        response = http.get(TWEET_SYNDICATION_URL, params={"id": tweet_id, "token": "0"})
        if response.status_code == 404:
            raise TweetNotFoundError("Tweet not found. It may have been deleted or is from a private account.")
        response.raise_for_status()
        data = response.json()
    except httpx.HTTPStatusError as exc:
        raise TweetFetchError(f"Failed to fetch tweet: {exc.response.status_code}") from exc
    except (httpx.HTTPError, ValueError) as exc:
        raise TweetFetchError(f"Failed to fetch tweet: {exc}") from exc
    finally:
        if owns_client:
            http.close()

    images = _photo_urls(data if isinstance(data, dict) else {})
    if not images:
        raise TweetNotFoundError("No images found in this tweet.")
    logger.info("Found %d image(s) in tweet %s", len(images), tweet_id)
    return images


def fetch_image(url: str, client: httpx.Client | None = None) -> bytes:
    """Download one photo from the image CDN and return its raw bytes."""
    if not url.startswith(TWEET_IMAGE_PREFIX):
        raise ValueError(f"Invalid image URL {url!r}")

    owns_client = client is None
    http = _client(client)
    try:
        response = http.get(
            url,
            headers={
                "Accept": "image/webp,image/apng,image/*,*/*;q=0.8",
                "Referer": "https://twitter.com/",
            },
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise TweetFetchError(f"Failed to fetch image: {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        raise TweetFetchError(f"Failed to fetch image: {exc}") from exc
    finally:
        if owns_client:
            http.close()

    logger.debug("Fetched %s (%d bytes)", url, len(response.content))
    return response.content
