"""Tests for the social and local SEO analyzers."""

import pytest


class TestSocialAnalyzer:
    """Profile links, Open Graph, Twitter Cards and the ad pixel."""

    @pytest.mark.asyncio
    async def test_profiles_and_metadata(self, make_page, html_builder):
        from seo_grader.modules.social import SocialAnalyzer
        head = (
            '<meta property="og:title" content="Acme Coffee">'
            '<meta property="og:image" content="https://example.com/og.png">'
            '<meta name="twitter:card" content="summary_large_image">'
        )
        body = (
            '<a href="https://www.facebook.com/acme">fb</a>'
            '<a href="https://x.com/acme">x</a>'
            '<a href="https://youtu.be/abc">yt</a>'
            '<a href="/contact">contact</a>'
        )
        result = await SocialAnalyzer().analyze(make_page(html_builder(head_extra=head, body=body)))

        assert result["links"]["facebook"] == "https://www.facebook.com/acme"
        assert result["links"]["twitter"] == "https://x.com/acme"
        assert result["links"]["youtube"] == "https://youtu.be/abc"
        assert result["links"]["instagram"] is None
        assert result["links"]["linkedin"] is None
        assert result["open_graph"]["present"] is True
        assert result["open_graph"]["og"]["title"] == "Acme Coffee"
        assert result["open_graph"]["og"]["description"] == ""
        assert result["twitter_cards"]["present"] is True
        assert result["twitter_cards"]["twitter"]["card"] == "summary_large_image"
        assert result["facebook_pixel"]["present"] is False

    @pytest.mark.asyncio
    async def test_first_matching_link_wins(self, make_page, html_builder):
        from seo_grader.modules.social import SocialAnalyzer
        body = '<a href="https://instagram.com/one">1</a><a href="https://instagram.com/two">2</a>'
        result = await SocialAnalyzer().analyze(make_page(html_builder(body=body)))
        assert result["links"]["instagram"] == "https://instagram.com/one"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("script", [
        '<script src="https://connect.facebook.net/en_US/fbevents.js"></script>',
        "<script>fbq('init', '1234'); fbq('track', 'PageView');</script>",
    ])
    async def test_pixel_detected(self, make_page, html_builder, script):
        from seo_grader.modules.social import SocialAnalyzer
        result = await SocialAnalyzer().analyze(make_page(html_builder(head_extra=script)))
        assert result["facebook_pixel"]["present"] is True

    @pytest.mark.asyncio
    async def test_malformed_markup_does_not_raise(self, make_page):
        from seo_grader.modules.social import SocialAnalyzer
        html = '<html><head><meta property="og:title" content="Broken<a href="https://linkedin.com/x"><div></span></p>'
        result = await SocialAnalyzer().analyze(make_page(html))
        assert set(result) == {"links", "open_graph", "twitter_cards", "facebook_pixel"}

    @pytest.mark.asyncio
    async def test_empty_document(self, make_page):
        from seo_grader.modules.social import SocialAnalyzer
        result = await SocialAnalyzer().analyze(make_page(""))
        assert result == SocialAnalyzer.default_result()


class TestLocalHelpers:
    @pytest.mark.parametrize("text, expected", [
        ("Call us: (555) 123-4567", True),
        ("+44 20 7946 0958", True),
        ("Order 12-34", False),
        ("Since 1998", False),
        ("", False),
    ])
    def test_has_phone_number(self, text, expected):
        from seo_grader.modules.local_seo.analyzer import has_phone_number
        assert has_phone_number(text) is expected

    @pytest.mark.parametrize("text, expected", [
        ("Rated by 128 reviews", 128),
        ("42 customer reviews", 42),
        ("★★★★★ loved it", "stars"),
        ("★★ meh", None),
        ("no feedback yet", None),
    ])
    def test_extract_review_count(self, text, expected):
        from seo_grader.modules.local_seo.analyzer import extract_review_count
        assert extract_review_count(text) == expected


class TestLocalSEOAnalyzer:
    @pytest.mark.asyncio
    async def test_full_local_page(self, make_page, html_builder):
        from seo_grader.modules.local_seo import LocalSEOAnalyzer
        head = (
            '<script type="application/ld+json">'
            '{"@context": "https://schema.org", "@type": "LocalBusiness", "name": "Acme"}'
            "</script>"
        )
        body = (
            "<footer><p>12 Main Street, Springfield</p><p>Tel: 555-123-4567</p>"
            '<a href="https://www.google.com/maps/place/Acme">Find us</a>'
            "<p>Read our 87 reviews</p></footer>"
        )
        result = await LocalSEOAnalyzer().analyze(make_page(html_builder(head_extra=head, body=body)))

        assert result["address_phone_shown"] == {"phone": True, "address": True}
        assert result["local_business_schema"]["present"] is True
        assert result["google_business_profile"]["detected"] is True
        assert result["reviews"]["count"] == 87

    @pytest.mark.asyncio
    @pytest.mark.parametrize("line", ["12 Main St. Springfield", "4 Mill Rd., Leeds", "Suite 5, 9 Oak Avenue"])
    async def test_abbreviated_street_addresses(self, make_page, html_builder, line):
        from seo_grader.modules.local_seo import LocalSEOAnalyzer
        result = await LocalSEOAnalyzer().analyze(make_page(html_builder(body="<p>" + line + "</p>")))
        assert result["address_phone_shown"]["address"] is True

    @pytest.mark.asyncio
    async def test_st_inside_word_is_not_an_address(self, make_page, html_builder):
        from seo_grader.modules.local_seo import LocalSEOAnalyzer
        result = await LocalSEOAnalyzer().analyze(make_page(html_builder(body="<p>The first. Best. Third.</p>")))
        assert result["address_phone_shown"]["address"] is False

    @pytest.mark.asyncio
    async def test_google_reviews_text_counts_as_profile(self, make_page, html_builder):
        from seo_grader.modules.local_seo import LocalSEOAnalyzer
        body = "<p>See what people say in our Google Reviews</p>"
        result = await LocalSEOAnalyzer().analyze(make_page(html_builder(body=body)))
        assert result["google_business_profile"]["detected"] is True

    @pytest.mark.asyncio
    async def test_no_signals(self, make_page, html_builder):
        from seo_grader.modules.local_seo import LocalSEOAnalyzer
        result = await LocalSEOAnalyzer().analyze(make_page(html_builder(body="<p>Hello world</p>")))
        assert result == LocalSEOAnalyzer.default_result()
