"""Tests for referrer and user-agent reduction."""

import pytest

from viewstats.referrer import referrer_host
from viewstats.user_agent import BrowserInfo, parse_browser, summarize_user_agent


class TestReferrerHost:
    """Only the hostname of a referrer survives."""

    def test_strips_scheme_path_and_query(self):
        assert referrer_host("https://example.com/foo?x=1") == "example.com"

    def test_strips_port_and_fragment(self):
        assert referrer_host("http://blog.example.com:8080/a/b#top") == "blog.example.com"

    def test_hostname_is_lowercased(self):
        assert referrer_host("https://WWW.Example.COM/") == "www.example.com"

    def test_bare_host_with_path(self):
        assert referrer_host("example.com/page") == "example.com"

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_empty_referrer(self, value):
        assert referrer_host(value) == ""

    @pytest.mark.parametrize(
        "value",
        [
            "http://[::1",
            "not a url",
            "https://exa mple.com/",
            "about:blank",
            "javascript:void(0)",
            "mailto:bob@corp.example",
            "data:text/html,hi",
        ],
    )
    def test_malformed_referrer_gives_empty_host(self, value):
        assert referrer_host(value) == ""


class TestUserAgentSummary:
    """User agents collapse to "{browser} {version}"."""

    def test_chrome(self):
        ua = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        assert summarize_user_agent(ua) == "Chrome 120.0.0.0"

    def test_firefox(self):
        ua = "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"
        assert summarize_user_agent(ua) == "Firefox 121.0"

    def test_edge_before_chrome(self):
        ua = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.2210.61"
        assert summarize_user_agent(ua) == "Edge 120.0.2210.61"

    def test_safari_after_chrome(self):
        ua = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
        assert summarize_user_agent(ua) == "Safari 17.0"

    def test_curl(self):
        assert summarize_user_agent("curl/7.88.1") == "curl 7.88.1"

    def test_unknown_agent_is_empty(self):
        assert summarize_user_agent("SomethingElse") == ""
        assert parse_browser("SomethingElse") == BrowserInfo()

    def test_empty_agent(self):
        assert summarize_user_agent("") == ""
        assert summarize_user_agent(None) == ""

    def test_name_without_version(self):
        assert BrowserInfo(name="Chrome").summary == "Chrome"
