"""Tests for URL normalization."""

import pytest

from newswatch.ingestion.urls import amp_variant, host_of, normalize_url


def test_normalize_drops_trackers_port_and_sorts_params():
    result = normalize_url("http://Example.com:80/path?utm_source=x&b=2&a=1")
    assert result == "http://example.com/path?a=1&b=2"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("https://www.bbc.co.uk/news/", "https://www.bbc.co.uk/news"),
        ("https://example.com/a//", "https://example.com/a"),
        ("https://example.com//", "https://example.com/"),
        ("https://example.com/", "https://example.com/"),
        ("https://example.com", "https://example.com/"),
        ("https://example.com:443/a#section", "https://example.com/a"),
        ("https://example.com:8443/a", "https://example.com:8443/a"),
        ("https://example.com/a?fbclid=1&gclid=2&ref=x&ref_src=y", "https://example.com/a"),
        ("https://example.com/a?mc_cid=1&mc_eid=2&igshid=3&id=7", "https://example.com/a?id=7"),
        ("https://example.com/a?utm_medium=rss&UTM_keep=1", "https://example.com/a?UTM_keep=1"),
    ],
)
def test_normalize_examples(raw, expected):
    assert normalize_url(raw) == expected


def test_normalize_keeps_order_of_repeated_params():
    assert normalize_url("https://ex.com/a?tag=b&tag=a&x=1") == "https://ex.com/a?tag=b&tag=a&x=1"


@pytest.mark.parametrize(
    "url",
    [
        "http://Example.com:80/path?utm_source=x&b=2&a=1",
        "https://www.theguardian.com/world/2024/may/01/story/?page=2&b=c%20d#top",
        "https://example.com/a%2Fb/?q=hello+world&empty=",
        "https://user:pw@Example.com:8080/x/",
        "http://[::1]:80/path/",
        "https://example.com/a//",
        "https://example.com/a///?b=1",
        "https://example.com/",
    ],
)
def test_normalize_is_idempotent(url):
    once = normalize_url(url)
    assert normalize_url(once) == once


@pytest.mark.parametrize(
    "raw",
    ["", "not a url", "mailto:someone@example.com", "ftp://example.com/file", "http://[bad"],
)
def test_malformed_urls_pass_through(raw):
    assert normalize_url(raw) == raw


def test_amp_variant():
    assert amp_variant("https://example.com/news/story/") == "https://example.com/news/story/amp"
    assert amp_variant("https://example.com/news/story?x=1") == "https://example.com/news/story/amp?x=1"
    assert amp_variant("https://example.com/news/story/amp") is None
    assert amp_variant("no-scheme") is None


def test_host_of_strips_www():
    assert host_of("https://www.NPR.org/x") == "npr.org"
    assert host_of("nonsense") is None
