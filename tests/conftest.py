import textwrap

import pytest
import requests


RSS_XML = textwrap.dedent(
    """\
    <?xml version="1.0" encoding="UTF-8"?>
    <rss version="2.0">
      <channel>
        <title>Example Blog</title>
        <link>https://example.com</link>
        <description>Posts about things</description>
        <item>
          <title>First post</title>
          <link>https://example.com/first</link>
          <guid>post-1</guid>
          <pubDate>Mon, 01 Jan 2024 10:00:00 GMT</pubDate>
          <author>writer@example.com</author>
          <description><![CDATA[<p>Hello <img src="https://example.com/a.png"/> world</p>]]></description>
        </item>
        <item>
          <link>https://example.com/second</link>
          <description>Plain text only</description>
        </item>
        <item>
          <title>Nothing else</title>
        </item>
      </channel>
    </rss>
    """
)

ATOM_XML = textwrap.dedent(
    """\
    <?xml version="1.0" encoding="utf-8"?>
    <feed xmlns="http://www.w3.org/2005/Atom">
      <title>Atom Example</title>
      <id>urn:uuid:feed</id>
      <updated>2024-02-01T12:00:00Z</updated>
      <entry>
        <title>Atom entry</title>
        <link href="https://example.org/entry"/>
        <id>urn:uuid:entry-1</id>
        <updated>2024-02-01T12:00:00Z</updated>
        <summary>Short summary</summary>
        <content type="html">&lt;p&gt;Full &lt;b&gt;content&lt;/b&gt;&lt;/p&gt;</content>
      </entry>
    </feed>
    """
)

PODCAST_XML = textwrap.dedent(
    """\
    <?xml version="1.0" encoding="UTF-8"?>
    <rss version="2.0" xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
      <channel>
        <title>Example Podcast</title>
        <link>https://podcast.example.com</link>
        <itunes:author>Jane Host</itunes:author>
        <itunes:image href="https://example.com/cover.jpg"/>
        <item>
          <title>Episode 1</title>
          <guid>ep-1</guid>
          <description>We talk about things.</description>
          <enclosure url="https://cdn.example.com/ep1.mp3" type="audio/mpeg" length="12345"/>
          <itunes:duration>00:42:10</itunes:duration>
          <itunes:explicit>yes</itunes:explicit>
          <itunes:episode>1</itunes:episode>
          <itunes:season>2</itunes:season>
        </item>
      </channel>
    </rss>
    """
)

YOUTUBE_XML = textwrap.dedent(
    """\
    <?xml version="1.0" encoding="UTF-8"?>
    <feed xmlns="http://www.w3.org/2005/Atom">
      <title>Some Channel</title>
      <id>yt:channel:UCxxxxxxxxxxxxxxxxxxxxxx</id>
      <entry>
        <id>yt:video:dQw4w9WgXcQ</id>
        <title>A video</title>
        <link rel="alternate" href="https://www.youtube.com/watch?v=dQw4w9WgXcQ"/>
        <published>2024-03-01T00:00:00+00:00</published>
      </entry>
    </feed>
    """
)

YOUTUBE_URL = "https://www.youtube.com/feeds/videos.xml?channel_id=UCxxxxxxxxxxxxxxxxxxxxxx"


class FakeResponse:
    def __init__(self, text="", status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


@pytest.fixture
def fake_get(monkeypatch):
    """Route requests.get to canned responses keyed by URL."""
    responses = {}
    calls = []

    def _get(url, headers=None, timeout=None, **kwargs):
        calls.append({"url": url, "headers": headers, "timeout": timeout})
        result = responses.get(url)
        if result is None:
            raise requests.ConnectionError(f"no route to {url}")
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(requests, "get", _get)
    _get.responses = responses
    _get.calls = calls
    return _get


def make_fetcher(documents):
    """Return a fetcher callable serving ``documents`` keyed by URL."""

    def _fetch(url, timeout=None):
        document = documents[url]
        if isinstance(document, Exception):
            raise document
        return document

    return _fetch
