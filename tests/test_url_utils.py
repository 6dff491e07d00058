"""Tests for URL normalization, classification and naming."""

import pytest

from argus.models.explorer import CrawlOptions
from argus.url_utils import (
    RESOURCE_EXTENSIONS,
    get_path_name,
    glob_to_regex,
    is_internal_url,
    matches_pattern,
    normalize_url,
    should_crawl,
)


# ============================================================================
# normalize_url
# ============================================================================


class TestNormalizeUrl:
    """Tests for normalize_url."""

    def test_strips_fragment(self):
        assert normalize_url("https://site.test/docs#intro") == "https://site.test/docs"

    def test_urls_differing_only_by_fragment_are_equal(self):
        variants = [
            "https://site.test/page",
            "https://site.test/page#a",
            "https://site.test/page#section-2",
            "https://site.test/page/#top",
        ]
        assert len({normalize_url(u) for u in variants}) == 1

    def test_keeps_query_by_default(self):
        assert normalize_url("https://site.test/search?q=x") == "https://site.test/search?q=x"

    def test_remove_query(self):
        result = normalize_url("https://site.test/search?q=x&page=2#r", remove_query=True)
        assert result == "https://site.test/search"
        assert "?" not in result

    def test_remove_query_on_urls_without_query(self):
        for url in ("https://site.test/", "https://site.test/a/b/", "https://site.test/x?"):
            assert "?" not in normalize_url(url, remove_query=True)

    def test_strips_one_trailing_slash(self):
        assert normalize_url("https://site.test/about/") == "https://site.test/about"

    def test_keeps_root_slash(self):
        assert normalize_url("https://site.test/") == "https://site.test/"

    def test_empty_path_becomes_root(self):
        assert normalize_url("https://site.test") == "https://site.test/"

    def test_lowercases_scheme_and_host(self):
        assert normalize_url("HTTPS://Site.TEST/Docs") == "https://site.test/Docs"

    def test_preserves_path_case(self):
        assert normalize_url("https://site.test/CamelCase") == "https://site.test/CamelCase"

    def test_drops_default_port(self):
        assert normalize_url("https://site.test:443/a") == "https://site.test/a"
        assert normalize_url("http://site.test:80/a") == "http://site.test/a"

    def test_keeps_custom_port(self):
        assert normalize_url("http://localhost:3000/a/") == "http://localhost:3000/a"

    def test_malformed_input_returned_unchanged(self):
        for value in ("not a url", "/relative/path", "", "http://host:badport/x"):
            assert normalize_url(value) == value


# ============================================================================
# is_internal_url
# ============================================================================


class TestIsInternalUrl:
    """Tests for is_internal_url."""

    def test_same_origin(self):
        assert is_internal_url("https://site.test/a/b", "https://site.test/")

    def test_subdomain_is_external(self):
        assert not is_internal_url("https://app.example.com/", "https://example.com")

    def test_different_scheme_is_external(self):
        assert not is_internal_url("http://site.test/", "https://site.test/")

    def test_different_port_is_external(self):
        assert not is_internal_url("https://site.test:8443/", "https://site.test/")

    def test_explicit_default_port_is_internal(self):
        assert is_internal_url("https://site.test:443/x", "https://site.test/")

    def test_host_case_is_ignored(self):
        assert is_internal_url("https://SITE.test/x", "https://site.test/")

    def test_unparsable_is_external(self):
        assert not is_internal_url("nonsense", "https://site.test/")


# ============================================================================
# Glob matching
# ============================================================================


class TestGlobMatching:
    """Tests for glob_to_regex and matches_pattern."""

    def test_star_matches_any_run(self):
        assert glob_to_regex("/admin/*").match("/admin/settings/users")

    def test_question_mark_matches_one_char(self):
        assert glob_to_regex("/v?").match("/v1")
        assert not glob_to_regex("/v?").match("/v10")

    def test_anchored(self):
        assert not glob_to_regex("/logout").match("/logout/now")
        assert not glob_to_regex("/logout").match("/app/logout")

    def test_case_insensitive(self):
        assert glob_to_regex("/Docs/*").match("/docs/intro")

    def test_regex_metacharacters_are_literal(self):
        assert glob_to_regex("/a.b").match("/a.b")
        assert not glob_to_regex("/a.b").match("/axb")
        assert glob_to_regex("/(x)+").match("/(x)+")

    def test_matches_any_pattern(self):
        assert matches_pattern("/logout", ["/admin/*", "/logout"])
        assert not matches_pattern("/dashboard", ["/admin/*", "/logout"])
        assert not matches_pattern("/anything", [])


# ============================================================================
# should_crawl
# ============================================================================


class TestShouldCrawl:
    """Tests for should_crawl."""

    def test_internal_page(self):
        assert should_crawl("https://x/dashboard", CrawlOptions(base_url="https://x/"))

    def test_rejects_non_http_schemes(self):
        options = CrawlOptions(base_url="https://x/")
        for url in ("mailto:a@x", "javascript:void(0)", "ftp://x/file", "tel:123"):
            assert not should_crawl(url, options)

    def test_rejects_external(self):
        assert not should_crawl("https://other/page", CrawlOptions(base_url="https://x/"))

    @pytest.mark.parametrize("ext", RESOURCE_EXTENSIONS)
    def test_rejects_resources_regardless_of_include(self, ext):
        options = CrawlOptions(base_url="https://x/", include=["*"])
        assert not should_crawl(f"https://x/assets/file{ext}", options)

    def test_resource_extension_check_is_case_insensitive(self):
        assert not should_crawl("https://x/logo.PNG", CrawlOptions(base_url="https://x/"))

    def test_exclude_patterns(self):
        options = CrawlOptions(base_url="https://x/", exclude=["/admin/*", "/logout"])
        assert not should_crawl("https://x/admin/settings", options)
        assert not should_crawl("https://x/logout", options)
        assert should_crawl("https://x/dashboard", options)

    def test_include_patterns(self):
        options = CrawlOptions(base_url="https://x/", include=["/docs/*"])
        assert should_crawl("https://x/docs/intro", options)
        assert should_crawl("https://x/docs/api/v2", options)
        assert not should_crawl("https://x/blog/post", options)
        assert not should_crawl("https://x/", options)

    def test_exclude_wins_over_include(self):
        options = CrawlOptions(base_url="https://x/", include=["/docs/*"], exclude=["/docs/private*"])
        assert not should_crawl("https://x/docs/private/a", options)

    def test_patterns_match_path_not_query(self):
        options = CrawlOptions(base_url="https://x/", exclude=["/search"])
        assert not should_crawl("https://x/search?q=1", options)

    def test_unparsable(self):
        assert not should_crawl("::::", CrawlOptions(base_url="https://x/"))


# ============================================================================
# get_path_name
# ============================================================================


class TestGetPathName:
    """Tests for get_path_name."""

    def test_root_is_home(self):
        assert get_path_name("https://site.test/") == "home"
        assert get_path_name("https://site.test") == "home"

    def test_nested_path(self):
        assert get_path_name("https://site.test/docs/intro/") == "docs-intro"

    def test_special_characters(self):
        assert get_path_name("https://site.test/Blog/Hello_World!") == "blog-hello-world-"

    def test_collapses_dashes(self):
        assert get_path_name("https://site.test/a--b//c") == "a-b-c"

    def test_unparsable(self):
        assert get_path_name("garbage") == "page"
