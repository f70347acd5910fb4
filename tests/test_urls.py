"""Tests for citation URL helpers."""

from app.analysis.urls import extract_domain, normalize_url, normalized_citation_urls, unique_urls


class TestExtractDomain:
    def test_strips_www(self):
        assert extract_domain("https://www.Acme.com/pricing") == "acme.com"

    def test_keeps_subdomain(self):
        assert extract_domain("https://docs.acme.com/start") == "docs.acme.com"

    def test_no_host(self):
        assert extract_domain("not a url") == ""


class TestNormalizeUrl:
    def test_lowercases_scheme_and_host_only(self):
        assert normalize_url("HTTPS://Acme.com/Pricing/") == "https://acme.com/Pricing"

    def test_drops_tracking_params_and_fragment(self):
        url = "https://acme.com/blog?utm_source=x&id=5&fbclid=abc&ref=hn#top"
        assert normalize_url(url) == "https://acme.com/blog?id=5"

    def test_empty_path_becomes_root(self):
        assert normalize_url("https://acme.com") == "https://acme.com/"

    def test_relative_input_only_stripped(self):
        assert normalize_url("  Acme.com/Page ") == "Acme.com/Page"


class TestNormalizedCitationUrls:
    def test_variants_collapse_to_one(self):
        citations = [
            "https://acme.com/guide",
            {"url": "https://acme.com/guide/"},
            "https://acme.com/guide#intro",
            "https://acme.com/Guide",
        ]
        assert normalized_citation_urls(citations) == ["https://acme.com/guide", "https://acme.com/Guide"]


class TestUniqueUrls:
    def test_mixed_entries_keep_order(self):
        citations = [
            "https://a.com/1",
            {"url": "https://b.com/2", "title": "B"},
            {"link": "https://c.com/3"},
            "https://a.com/1",
        ]
        assert unique_urls(citations) == ["https://a.com/1", "https://b.com/2", "https://c.com/3"]

    def test_non_http_dropped(self):
        assert unique_urls(["ftp://x.com", "mailto:a@b.c", 42, {"title": "no url"}]) == []

    def test_none(self):
        assert unique_urls(None) == []
