"""
Tests for URL normalization.
"""
import pytest

from dupmark.entities import DetectionOptions
from dupmark.normalize import normalize_url, urls_match


ALL_OFF = DetectionOptions(
    ignore_query_params=False,
    ignore_protocol=False,
    ignore_www=False,
    ignore_trailing_slash=False,
    case_sensitive=True,
)


class TestNormalizationRules:
    """Test each rule and their fixed order."""

    def test_protocol_www_and_trailing_slash_collapse(self):
        """https://example.com and http://www.example.com/ normalize equal."""
        a = normalize_url("https://example.com")
        b = normalize_url("http://www.example.com/")

        assert a.normalized == "//example.com"
        assert b.normalized == "//example.com"

    def test_full_default_pipeline(self):
        """Query, fragment, slash and case all disappear with defaults."""
        result = normalize_url("https://www.Example.com/Path/?a=1&b=2#frag")
        assert result.normalized == "//example.com/path"

    def test_all_rules_disabled_only_drops_fragment(self):
        """The fragment is always dropped."""
        result = normalize_url("https://www.Example.com/Path/?a=1#frag", ALL_OFF)
        assert result.normalized == "https://www.Example.com/Path/?a=1"

    def test_keep_protocol_still_strips_www(self):
        """www. is stripped right after the scheme separator."""
        options = DetectionOptions(ignore_protocol=False)
        assert normalize_url("https://www.example.com", options).normalized == "https://example.com"

    def test_protocol_difference_matters_when_not_ignored(self):
        options = DetectionOptions(ignore_protocol=False)
        assert not urls_match("http://example.com", "https://example.com", options)
        assert urls_match("http://example.com", "https://example.com")

    def test_other_schemes_keep_protocol(self):
        """Only http and https are stripped."""
        result = normalize_url("ftp://www.example.com/file")
        assert result.normalized == "ftp://example.com/file"

    def test_query_kept_when_not_ignored(self):
        options = DetectionOptions(ignore_query_params=False)
        result = normalize_url("https://example.com/page?B=2", options)
        assert result.normalized == "//example.com/page?b=2"

    def test_query_params_distinguish_when_kept(self):
        options = DetectionOptions(ignore_query_params=False)
        assert not urls_match("https://example.com/?id=1", "https://example.com/?id=2", options)
        assert urls_match("https://example.com/?id=1", "https://example.com/?id=2")

    def test_trailing_slash_before_query_is_stripped(self):
        """The slash ending the path goes even when a query follows."""
        options = DetectionOptions(ignore_protocol=False, ignore_query_params=False)
        result = normalize_url("https://example.com/docs/?page=2", options)
        assert result.normalized == "https://example.com/docs?page=2"

    def test_only_one_trailing_slash_is_stripped(self):
        result = normalize_url("https://example.com/a//")
        assert result.normalized == "//example.com/a/"

    def test_case_sensitive_keeps_case(self):
        options = DetectionOptions(case_sensitive=True)
        assert normalize_url("https://Example.com/Page", options).normalized == "//Example.com/Page"

    def test_uppercase_scheme_is_stripped(self):
        assert normalize_url("HTTPS://WWW.EXAMPLE.COM").normalized == "//example.com"


class TestStructuredFields:
    """Test parsed URL components."""

    def test_components(self):
        result = normalize_url("https://www.Example.com/Path/?a=1&b=2#frag")

        assert result.original == "https://www.Example.com/Path/?a=1&b=2#frag"
        assert result.domain == "www.example.com"
        assert result.path == "/Path/"
        assert result.query_params == {"a": "1", "b": "2"}
        assert result.fragment == "#frag"

    def test_empty_path_is_root(self):
        result = normalize_url("https://example.com")
        assert result.path == "/"
        assert result.fragment == ""
        assert result.query_params == {}

    def test_repeated_query_key_keeps_last_value(self):
        result = normalize_url("https://example.com/?a=1&a=2")
        assert result.query_params == {"a": "2"}


class TestMalformedUrls:
    """Unparseable input degrades gracefully instead of raising."""

    @pytest.mark.parametrize("url", [
        "not a url",
        "example.com/path",
        "http://",
        "http://[::1",
        "https://example.com:notaport/",
        "",
    ])
    def test_returned_unchanged(self, url):
        result = normalize_url(url)

        assert result.original == url
        assert result.normalized == url
        assert result.domain == ""
        assert result.path == ""
        assert result.query_params == {}
        assert result.fragment == ""

    def test_malformed_urls_compare_by_string(self):
        assert urls_match("not a url", "not a url")
        assert not urls_match("not a url", "Not a URL")


class TestIdempotence:
    """normalize(normalize(u)) == normalize(u) for every option set."""

    URLS = [
        "https://www.Example.com/Path/?a=1#frag",
        "http://example.com/",
        "HTTPS://WWW.EXAMPLE.COM",
        "https://example.com/docs/?page=2",
        "https://example.com/a/b/",
        "mailto:someone@example.com",
        "not a url",
    ]

    OPTION_SETS = [
        DetectionOptions(),
        DetectionOptions(ignore_protocol=False),
        DetectionOptions(ignore_query_params=False),
        DetectionOptions(case_sensitive=True),
        DetectionOptions(ignore_protocol=False, ignore_www=False, case_sensitive=True),
        ALL_OFF,
    ]

    @pytest.mark.parametrize("url", URLS)
    @pytest.mark.parametrize("options", OPTION_SETS)
    def test_idempotent(self, url, options):
        once = normalize_url(url, options).normalized
        twice = normalize_url(once, options).normalized
        assert twice == once

    @pytest.mark.parametrize("url,options,passes", [
        ("https://example.com//", DetectionOptions(ignore_protocol=False),
         ["https://example.com/", "https://example.com"]),
        ("https://www.www.example.com", DetectionOptions(ignore_protocol=False),
         ["https://www.example.com", "https://example.com"]),
    ])
    def test_repeats_are_stripped_one_per_pass(self, url, options, passes):
        """Repeated trailing slashes and www. labels are not collapsed in one pass."""
        once = normalize_url(url, options).normalized
        twice = normalize_url(once, options).normalized
        assert [once, twice] == passes
