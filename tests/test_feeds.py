from datetime import datetime

import pytest
import requests

from conftest import ATOM_XML, PODCAST_XML, RSS_XML, FakeResponse
from rss_dashboard.errors import FetchError, ParseError
from rss_dashboard.feeds import (
    ACCEPT,
    USER_AGENT,
    fetch_feed_xml,
    parse_feed_document,
    secure_url,
)


def test_secure_url_upgrades_plain_http():
    assert secure_url("http://example.com/feed") == "https://example.com/feed"
    assert secure_url("HTTP://example.com/feed") == "https://example.com/feed"
    assert secure_url("https://example.com/feed") == "https://example.com/feed"


def test_fetch_feed_xml_sends_headers_and_upgrades_url(fake_get):
    fake_get.responses["https://example.com/feed.xml"] = FakeResponse(RSS_XML)

    text = fetch_feed_xml("http://example.com/feed.xml", timeout=3.5)

    assert text == RSS_XML
    call = fake_get.calls[0]
    assert call["url"] == "https://example.com/feed.xml"
    assert call["headers"]["User-Agent"] == USER_AGENT
    assert call["headers"]["Accept"] == ACCEPT
    assert call["timeout"] == 3.5


def test_fetch_feed_xml_rejects_empty_body(fake_get):
    fake_get.responses["https://example.com/empty"] = FakeResponse("")

    with pytest.raises(FetchError) as excinfo:
        fetch_feed_xml("https://example.com/empty")

    assert excinfo.value.url == "https://example.com/empty"


def test_fetch_feed_xml_rejects_error_status(fake_get):
    fake_get.responses["https://example.com/missing"] = FakeResponse("nope", 404)

    with pytest.raises(FetchError):
        fetch_feed_xml("https://example.com/missing")


def test_fetch_feed_xml_wraps_network_errors(fake_get):
    fake_get.responses["https://example.com/slow"] = requests.Timeout("timed out")

    with pytest.raises(FetchError, match="timed out"):
        fetch_feed_xml("https://example.com/slow")


def test_parse_rss_document_normalises_items():
    raw_feed = parse_feed_document(RSS_XML)

    assert raw_feed.title == "Example Blog"
    assert raw_feed.is_podcast is False
    assert len(raw_feed.items) == 3

    first, second, third = raw_feed.items
    assert first.title == "First post"
    assert first.link == "https://example.com/first"
    assert first.guid == "post-1"
    assert first.pub_date == "2024-01-01T10:00:00+00:00"
    assert "<img" in first.description

    assert second.title == "No title"
    assert second.guid == "https://example.com/second"
    assert second.description == "Plain text only"

    assert third.link == "#"
    assert third.guid == ""


def test_parse_rss_document_defaults_missing_date_to_now():
    before = datetime.now().astimezone()
    raw_feed = parse_feed_document(RSS_XML)

    parsed = datetime.fromisoformat(raw_feed.items[1].pub_date)
    assert parsed >= before.replace(microsecond=0)


def test_parse_atom_document_uses_same_shape():
    raw_feed = parse_feed_document(ATOM_XML)

    assert raw_feed.title == "Atom Example"
    item = raw_feed.items[0]
    assert item.guid == "urn:uuid:entry-1"
    assert item.link == "https://example.org/entry"
    assert item.description == "Short summary"
    assert item.content == "<p>Full <b>content</b></p>"
    assert item.pub_date == "2024-02-01T12:00:00+00:00"


def test_parse_podcast_document_reads_itunes_fields():
    raw_feed = parse_feed_document(PODCAST_XML)

    assert raw_feed.is_podcast is True
    assert raw_feed.author == "Jane Host"
    item = raw_feed.items[0]
    assert item.enclosure.url == "https://cdn.example.com/ep1.mp3"
    assert item.enclosure.type == "audio/mpeg"
    assert item.enclosure.length == "12345"
    assert item.duration == "00:42:10"
    assert item.explicit is True
    assert item.episode == 1
    assert item.season == 2
    assert item.image == "https://example.com/cover.jpg"
    assert item.author == "Jane Host"


@pytest.mark.parametrize(
    "document",
    [
        "this is not xml",
        "<rss version='2.0'><channel><title>Broken</channel></rss>",
    ],
)
def test_parse_feed_document_rejects_malformed_xml(document):
    with pytest.raises(ParseError):
        parse_feed_document(document)


def test_parse_feed_document_rejects_unknown_root():
    with pytest.raises(ParseError):
        parse_feed_document("<?xml version='1.0'?><catalog><book>x</book></catalog>")
