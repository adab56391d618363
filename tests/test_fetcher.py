"""Tests for the page fetcher."""

from unittest.mock import AsyncMock, patch

import aiohttp
import pytest
from bs4 import BeautifulSoup

PAGE = (
    '<html lang="en"><head><title>Home</title>'
    '<link rel="stylesheet" href="/css/site.css"><link rel="icon" href="/favicon.ico">'
    '<script src="https://cdn.example.com/app.js"></script></head>'
    '<body><img src="img/hero.png"><script>inline()</script></body></html>'
)


class TestHelpers:
    def test_decode_known_charset(self):
        from seo_grader.integrations.fetcher import decode_body
        assert decode_body("café".encode("latin-1"), "latin-1") == "café"

    def test_decode_unknown_charset_falls_back(self):
        from seo_grader.integrations.fetcher import decode_body
        assert decode_body(b"plain \xff text", "no-such-charset") == "plain � text"
        assert decode_body(b"abc", None) == "abc"

    def test_discover_resources(self):
        from seo_grader.integrations.fetcher import discover_resources
        soup = BeautifulSoup(PAGE, "html.parser")
        found = discover_resources(soup, "https://example.com/blog/")
        assert found == [
            ("link", "https://example.com/css/site.css"),
            ("script", "https://cdn.example.com/app.js"),
            ("img", "https://example.com/blog/img/hero.png"),
        ]

    def test_discover_resources_keeps_document_order(self):
        from seo_grader.integrations.fetcher import discover_resources
        html = (
            '<img src="/a.png"><link rel="stylesheet" href="/b.css">'
            '<script src="/c.js"></script><img src="/d.png"><link rel="Stylesheet" href="/e.css">'
        )
        found = discover_resources(BeautifulSoup(html, "html.parser"), "https://example.com/")
        assert [tag for tag, _ in found] == ["img", "link", "script", "img", "link"]
        assert found[0] == ("img", "https://example.com/a.png")

    def test_discover_resources_skips_unresolvable(self):
        from seo_grader.integrations.fetcher import discover_resources
        html = '<img src="http://[broken/x.png"><script src="/app.js"></script>'
        found = discover_resources(BeautifulSoup(html, "html.parser"), "https://example.com/")
        assert found == [("script", "https://example.com/app.js")]


class TestFetch:
    """fetch() with the network layer patched."""

    @pytest.mark.asyncio
    async def test_builds_parsed_page(self):
        from seo_grader.integrations.fetcher import PageFetcher
        from seo_grader.models.page import SubResource

        fetcher = PageFetcher()
        resources = [SubResource(tag="link", url="https://example.com/css/site.css", size=10, type="text/css")]
        with patch.object(fetcher, "_get_document", new=AsyncMock(
            return_value=("https://www.example.com/", {"Content-Type": "text/html", "X-Robots-Tag": "all"}, PAGE),
        )) as get_doc, patch.object(fetcher, "probe_resources", new=AsyncMock(return_value=resources)):
            page = await fetcher.fetch("example.com")

        get_doc.assert_awaited_once_with("https://example.com")
        assert page.url == "https://www.example.com/"
        assert page.requested_url == "https://example.com"
        assert page.header("x-robots-tag") == "all"
        assert page.resources == tuple(resources)
        assert page.soup.title.string == "Home"
        assert page.timing.all_content >= 0

    @pytest.mark.asyncio
    async def test_cache_hit_skips_network(self):
        from seo_grader.integrations.fetcher import PageFetcher
        from seo_grader.utils.cache import TTLCache

        fetcher = PageFetcher(cache=TTLCache())
        get_doc = AsyncMock(return_value=("https://example.com/", {}, PAGE))
        with patch.object(fetcher, "_get_document", new=get_doc), \
                patch.object(fetcher, "probe_resources", new=AsyncMock(return_value=[])):
            first = await fetcher.fetch("https://Example.com")
            second = await fetcher.fetch("example.com/")
        assert first is second
        assert get_doc.await_count == 1

    @pytest.mark.asyncio
    async def test_no_store_is_not_cached(self):
        from seo_grader.integrations.fetcher import PageFetcher
        from seo_grader.utils.cache import TTLCache

        fetcher = PageFetcher(cache=TTLCache())
        get_doc = AsyncMock(return_value=("https://example.com/", {"Cache-Control": "no-store"}, PAGE))
        with patch.object(fetcher, "_get_document", new=get_doc), \
                patch.object(fetcher, "probe_resources", new=AsyncMock(return_value=[])):
            await fetcher.fetch("https://example.com/")
            await fetcher.fetch("https://example.com/")
        assert get_doc.await_count == 2
        assert len(fetcher.cache) == 0

    @pytest.mark.asyncio
    async def test_network_error_becomes_fetch_error(self):
        from seo_grader.exceptions import FetchError
        from seo_grader.integrations.fetcher import PageFetcher

        fetcher = PageFetcher()
        with patch.object(fetcher, "_get", new=AsyncMock(side_effect=aiohttp.ClientConnectionError("dns"))):
            with pytest.raises(FetchError) as excinfo:
                await fetcher.fetch("https://nowhere.invalid/")
        assert excinfo.value.url == "https://nowhere.invalid/"
        assert "dns" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_timeout_becomes_fetch_error(self):
        import asyncio

        from seo_grader.exceptions import FetchError
        from seo_grader.integrations.fetcher import PageFetcher

        fetcher = PageFetcher()
        with patch.object(fetcher, "_get", new=AsyncMock(side_effect=asyncio.TimeoutError())):
            with pytest.raises(FetchError):
                await fetcher.fetch("https://slow.example/")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["https://a..b", "https://" + "a" * 70 + ".com"])
    async def test_bad_host_becomes_fetch_error(self, url):
        from seo_grader.exceptions import FetchError
        from seo_grader.integrations.fetcher import PageFetcher

        fetcher = PageFetcher()
        idna_error = UnicodeError("encoding with 'idna' codec failed (UnicodeError: label empty or too long)")
        with patch.object(fetcher, "_get", new=AsyncMock(side_effect=idna_error)):
            with pytest.raises(FetchError) as excinfo:
                await fetcher.fetch(url)
        assert excinfo.value.url == url
        assert excinfo.value.cause is idna_error

    @pytest.mark.asyncio
    async def test_unparsable_url_becomes_fetch_error(self):
        from seo_grader.exceptions import FetchError
        from seo_grader.integrations.fetcher import PageFetcher

        fetcher = PageFetcher()
        with patch.object(fetcher, "_get_document", new=AsyncMock()) as get_doc:
            with pytest.raises(FetchError, match="Invalid IPv6 URL"):
                await fetcher.fetch("https://[::1")
        get_doc.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_probe_resources_without_candidates(self):
        from seo_grader.integrations.fetcher import PageFetcher
        soup = BeautifulSoup("<html><body>text</body></html>", "html.parser")
        assert await PageFetcher().probe_resources(soup, "https://example.com/") == []
