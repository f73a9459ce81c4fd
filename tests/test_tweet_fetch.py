"""
Tweet photo lookup tests (HTTP mocked with httpx.MockTransport).
"""
import httpx
import pytest

from grid_split_tool.tweet_fetch import (
    TweetFetchError,
    TweetNotFoundError,
    extract_tweet_id,
    fetch_image,
    fetch_tweet_images,
)

TWEET_URL = "https://x.com/someone/status/1234567890"
PHOTO = "https://pbs.twimg.com/media/abc.jpg"


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestExtractTweetId:
    @pytest.mark.parametrize("url", [
        "https://twitter.com/user/status/1234567890",
        "https://x.com/user/status/1234567890?s=20",
        "https://mobile.twitter.com/user_1/status/1234567890/photo/1",
        "x.com/user/status/1234567890",
    ])
    def test_valid(self, url):
        assert extract_tweet_id(url) == "1234567890"

    @pytest.mark.parametrize("url", ["", "https://example.com/status/1", "https://x.com/user", None])
    def test_invalid(self, url):
        assert extract_tweet_id(url) is None


class TestFetchTweetImages:
    def test_media_details(self):
        seen = {}

        def handler(request):
            seen["id"] = request.url.params["id"]
            return httpx.Response(200, json={"mediaDetails": [
                {"type": "photo", "media_url_https": PHOTO},
                {"type": "video", "media_url_https": "https://pbs.twimg.com/video.jpg"},
            ]})

        urls = fetch_tweet_images(TWEET_URL, client=_client(handler))
        assert seen["id"] == "1234567890"
        assert urls == [PHOTO + "?format=jpg&name=large"]

    def test_photos_fallback(self):
        def handler(request):
            return httpx.Response(200, json={"photos": [{"url": PHOTO}, {"url": "https://elsewhere/x.jpg"}]})

        assert fetch_tweet_images(TWEET_URL, client=_client(handler)) == [PHOTO + "?format=jpg&name=large"]

    def test_invalid_url(self):
        with pytest.raises(ValueError):
            fetch_tweet_images("https://example.com/nothing")

    def test_not_found(self):
        with pytest.raises(TweetNotFoundError):
            fetch_tweet_images(TWEET_URL, client=_client(lambda request: httpx.Response(404)))

    def test_no_photos(self):
        def handler(request):
            return httpx.Response(200, json={"text": "just words"})

        with pytest.raises(TweetNotFoundError, match="No images"):
            fetch_tweet_images(TWEET_URL, client=_client(handler))

    def test_server_error(self):
        with pytest.raises(TweetFetchError) as excinfo:
            fetch_tweet_images(TWEET_URL, client=_client(lambda request: httpx.Response(500)))
        assert not isinstance(excinfo.value, TweetNotFoundError)
        assert "500" in str(excinfo.value)

    def test_bad_json(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>")

        with pytest.raises(TweetFetchError):
            fetch_tweet_images(TWEET_URL, client=_client(handler))

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        with pytest.raises(TweetFetchError):
            fetch_tweet_images(TWEET_URL, client=_client(handler))


class TestFetchImage:
    def test_returns_bytes(self):
        def handler(request):
            assert request.headers["Referer"] == "https://twitter.com/"
            return httpx.Response(200, content=b"\xff\xd8jpeg")

        assert fetch_image(PHOTO, client=_client(handler)) == b"\xff\xd8jpeg"

    def test_rejects_other_hosts(self):
        with pytest.raises(ValueError):
            fetch_image("https://example.com/a.jpg")

    def test_http_error(self):
        with pytest.raises(TweetFetchError, match="403"):
            fetch_image(PHOTO, client=_client(lambda request: httpx.Response(403)))
