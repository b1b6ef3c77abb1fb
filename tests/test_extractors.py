import pytest

from rss_dashboard.extractors import (
    enrich_items,
    extract_cover_image,
    extract_podcast_audio,
    extract_podcast_duration,
    extract_summary,
    extract_youtube_video_id,
)
from rss_dashboard.models import RawFeed, RawItem


def test_cover_image_prefers_open_graph_metadata():
    html = (
        '<meta name="twitter:image" content="https://example.com/twitter.jpg">'
        '<meta property="og:image" content="https://example.com/og.jpg">'
        '<img src="https://example.com/inline.jpg">'
    )
    assert extract_cover_image(html) == "https://example.com/og.jpg"


def test_cover_image_falls_back_to_twitter_card():
    html = (
        '<meta property="og:image" content="/relative.jpg">'
        '<meta name="twitter:image" content="https://example.com/twitter.jpg">'
        '<img src="https://example.com/inline.jpg">'
    )
    assert extract_cover_image(html) == "https://example.com/twitter.jpg"


def test_cover_image_uses_first_absolute_img():
    html = '<p>Text</p><img src="https://example.com/first"><img src="https://example.com/b.png">'
    assert extract_cover_image(html) == "https://example.com/first"


def test_cover_image_scans_for_image_like_sources():
    html = (
        '<img src="/local.png">'
        '<img src="https://example.com/tracker">'
        '<img src="https://example.com/photo.jpeg">'
    )
    assert extract_cover_image(html) == "https://example.com/photo.jpeg"


@pytest.mark.parametrize("html", ["", None, "<p>No images here</p>", '<img src="data:x">'])
def test_cover_image_returns_empty_string_without_match(html):
    assert extract_cover_image(html) == ""


def test_summary_truncates_with_ellipsis():
    summary = extract_summary("<p>" + "a" * 200 + "</p>", 150)
    assert summary == "a" * 150 + "..."


def test_summary_strips_markup_and_collapses_whitespace():
    html = "<p>Hello\n\n  <strong>brave</strong>   new <a href='#'>world</a>.</p>"
    assert extract_summary(html) == "Hello brave new world."


def test_summary_joins_text_split_by_inline_markup():
    assert extract_summary("<p>Hello <b>W</b>orld</p>") == "Hello World"
    html = "<p>Hello <b>W</b>orld, it<em>'</em>s fine</p>"
    assert extract_summary(html) == "Hello World, it's fine"
    assert extract_summary("<p>Wait , what ?</p>") == "Wait , what ?"


def test_summary_decodes_double_escaped_entities():
    html = "<p>Fish &amp;amp; chips &amp;#39;n&amp;#39; more</p>"
    assert extract_summary(html) == "Fish & chips 'n' more"


def test_summary_keeps_short_text_untouched():
    assert extract_summary("Short", 150) == "Short"
    assert extract_summary("") == ""


def test_extractors_are_deterministic():
    html = '<p>Body <img src="https://example.com/x.gif"></p> Duration: 10:00'
    assert extract_summary(html) == extract_summary(html)
    assert extract_cover_image(html) == extract_cover_image(html)
    assert extract_podcast_duration(html) == extract_podcast_duration(html)


def test_podcast_audio_prefers_enclosure_over_links():
    html = '<a href="b.mp3">Download</a><enclosure url="a.mp3" type="audio/mpeg"/>'
    assert extract_podcast_audio(html) == "a.mp3"


@pytest.mark.parametrize(
    "html, expected",
    [
        ('<audio controls src="https://x.test/ep.m4a"></audio>', "https://x.test/ep.m4a"),
        ('<a href="https://x.test/ep.ogg">listen</a>', "https://x.test/ep.ogg"),
        ('<audio><source src="https://x.test/ep.flac"></audio>', "https://x.test/ep.flac"),
        ('<a href="https://x.test/page.html">read</a>', None),
        ("", None),
    ],
)
def test_podcast_audio_patterns(html, expected):
    assert extract_podcast_audio(html) == expected


@pytest.mark.parametrize(
    "html, expected",
    [
        ("Duration: 1:02:03", "1:02:03"),
        ("Episode length - 45:10", "45:10"),
        ("Running time 12:34", "12:34"),
        ("A quick 05:30 minutes chat", "05:30"),
        ("No timing information", None),
        (None, None),
    ],
)
def test_podcast_duration(html, expected):
    assert extract_podcast_duration(html) == expected


@pytest.mark.parametrize(
    "link",
    [
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://youtu.be/dQw4w9WgXcQ",
        "https://www.youtube.com/embed/dQw4w9WgXcQ",
        "https://www.youtube.com/v/dQw4w9WgXcQ?version=3",
        "https://www.youtube.com/watch?feature=share&v=dQw4w9WgXcQ",
    ],
)
def test_youtube_video_id(link):
    assert extract_youtube_video_id(link) == "dQw4w9WgXcQ"


@pytest.mark.parametrize("link", ["", None, "https://example.com/watch?v=dQw4w9WgXcQ"])
def test_youtube_video_id_missing(link):
    assert extract_youtube_video_id(link) is None


def test_enrich_items_prefers_content_and_falls_back_to_item_image():
    items = [
        RawItem(
            title="With content",
            link="#",
            guid="1",
            pub_date="2024-01-01T00:00:00+00:00",
            description="<p>Short</p>",
            content='<p>Long body <img src="https://example.com/c.png"></p>',
        ),
        RawItem(
            title="Artwork only",
            link="#",
            guid="2",
            pub_date="2024-01-01T00:00:00+00:00",
            description="Words",
            image="https://example.com/art.jpg",
        ),
    ]

    enriched = enrich_items(RawFeed(title="Feed", items=items), summary_length=5)

    assert enriched.items[0].cover_image == "https://example.com/c.png"
    assert enriched.items[0].summary == "Long ..."
    assert enriched.items[1].cover_image == "https://example.com/art.jpg"
    assert enriched.items[1].summary == "Words"
    assert items[0].cover_image == ""
