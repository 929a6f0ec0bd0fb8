import pytest
from bs4 import BeautifulSoup

from eni.parsers.enml import (
    ENCRYPTED_PLACEHOLDER,
    ConversionOptions,
    convert_enml_to_html,
    extract_plain_text,
)

PROLOG = (
    '<?xml version="1.0" encoding="UTF-8" standalone="no"?>\n'
    '<!DOCTYPE en-note SYSTEM "http://xml.evernote.com/pub/enml2.dtd">\n'
)

PNG_MAP = {
    "abc123": {
        "url": "https://store/x.png",
        "mime_type": "image/png",
        "filename": "x.png",
    }
}


def soup_of(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


# ---------------------------------------------------------------------------
# Concrete scenarios
# ---------------------------------------------------------------------------
def test_grocery_list_converts_to_plain_container():
    enml = "<en-note><ul><li>Milk</li></ul></en-note>"

    assert convert_enml_to_html(enml) == '<div class="en-note"><ul><li>Milk</li></ul></div>'
    assert extract_plain_text(enml) == "Milk"


def test_prolog_and_doctype_are_stripped():
    html = convert_enml_to_html(PROLOG + "<en-note><p>Hi</p></en-note>")

    assert html == '<div class="en-note"><p>Hi</p></div>'
    assert "DOCTYPE" not in html
    assert "<?xml" not in html


def test_resolved_image_reference_becomes_img():
    html = convert_enml_to_html(
        '<en-note><en-media hash="abc123" type="image/png"/></en-note>', PNG_MAP
    )

    img = soup_of(html).find("img")
    assert img is not None
    assert img["src"] == "https://store/x.png"
    assert img["loading"] == "lazy"
    assert "en-media-placeholder" not in html


def test_en_note_keeps_its_other_attributes():
    html = convert_enml_to_html('<en-note class="dark" style="color:red"><p>x</p></en-note>')

    root = soup_of(html).find("div")
    assert root["class"] == ["en-note", "dark"]
    assert root["style"] == "color:red"


# ---------------------------------------------------------------------------
# Media rendering by MIME type
# ---------------------------------------------------------------------------
def test_image_dimensions_come_from_markup_then_resource():
    markup_sized = convert_enml_to_html(
        '<en-note><en-media hash="abc123" type="image/png" width="200" height="100"/></en-note>',
        PNG_MAP,
    )
    img = soup_of(markup_sized).find("img")
    assert (img["width"], img["height"]) == ("200", "100")

    resource_sized = convert_enml_to_html(
        '<en-note><en-media hash="abc123" type="image/png"/></en-note>',
        {"abc123": {**PNG_MAP["abc123"], "width": 640, "height": 480}},
    )
    img = soup_of(resource_sized).find("img")
    assert (img["width"], img["height"]) == ("640", "480")


def test_hash_lookup_is_case_insensitive():
    html = convert_enml_to_html('<en-note><en-media hash="ABC123" type="image/png"/></en-note>', PNG_MAP)
    assert soup_of(html).find("img")["src"] == "https://store/x.png"


def test_audio_reference():
    html = convert_enml_to_html(
        '<en-note><en-media hash="a1" type="audio/mpeg"/></en-note>',
        {"a1": {"url": "https://store/a.mp3", "mime_type": "audio/mpeg", "filename": "a.mp3"}},
    )
    audio = soup_of(html).find("audio")
    assert audio is not None
    assert audio.has_attr("controls")
    assert audio.find("source")["src"] == "https://store/a.mp3"
    assert audio.find("source")["type"] == "audio/mpeg"


def test_video_reference_keeps_size():
    html = convert_enml_to_html(
        '<en-note><en-media hash="v1" type="video/mp4" width="320" height="240"/></en-note>',
        {"v1": {"url": "https://store/v.mp4", "mime_type": "video/mp4", "filename": "v.mp4"}},
    )
    video = soup_of(html).find("video")
    assert video["width"] == "320"
    assert video["height"] == "240"
    assert video.find("source")["src"] == "https://store/v.mp4"


def test_pdf_reference_is_a_download_link_labelled_with_filename():
    html = convert_enml_to_html(
        '<en-note><en-media hash="p1" type="application/pdf"/></en-note>',
        {"p1": {"url": "https://store/r.pdf", "mime_type": "application/pdf", "filename": "report.pdf"}},
    )
    link = soup_of(html).find("a")
    assert link["href"] == "https://store/r.pdf"
    assert link["download"] == "report.pdf"
    assert link.get_text() == "report.pdf"


def test_pdf_without_filename_uses_generic_label():
    html = convert_enml_to_html(
        '<en-note><en-media hash="p1" type="application/pdf"/></en-note>',
        {"p1": {"url": "https://store/r.pdf", "mime_type": "application/pdf"}},
    )
    assert soup_of(html).find("a").get_text() == "PDF Document"


def test_other_types_become_generic_download_link():
    html = convert_enml_to_html(
        '<en-note><en-media hash="z1" type="application/zip"/></en-note>',
        {"z1": {"url": "https://store/z.zip", "mime_type": "application/zip", "filename": "z.zip"}},
    )
    link = soup_of(html).find("a")
    assert "en-media-attachment" in link["class"]
    assert link["href"] == "https://store/z.zip"


# ---------------------------------------------------------------------------
# Unresolved references never vanish
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("mime", ["image/jpeg", "audio/wav", "application/pdf", "text/plain"])
def test_unresolved_reference_renders_placeholder_with_hash(mime):
    html = convert_enml_to_html(f'<en-note><en-media hash="deadbeef" type="{mime}"/></en-note>', {})

    placeholder = soup_of(html).find("div", class_="en-media-placeholder")
    assert placeholder is not None
    assert placeholder["data-hash"] == "deadbeef"
    assert placeholder["data-type"] == mime


def test_unclosed_media_element_does_not_swallow_following_content():
    html = convert_enml_to_html('<en-note><en-media hash="deadbeef" type="image/png"><p>after</p></en-note>')

    soup = soup_of(html)
    assert soup.find("div", class_="en-media-placeholder") is not None
    assert soup.find("p").get_text() == "after"


# ---------------------------------------------------------------------------
# Checkboxes and encrypted blocks
# ---------------------------------------------------------------------------
def test_todos_become_disabled_checkboxes_preserving_state():
    html = convert_enml_to_html(
        '<en-note><en-todo checked="true"/>Done<en-todo checked="false"/>Open<en-todo/>Also open</en-note>'
    )

    boxes = soup_of(html).find_all("input")
    assert len(boxes) == 3
    assert all(b["type"] == "checkbox" and b.has_attr("disabled") for b in boxes)
    assert [b.has_attr("checked") for b in boxes] == [True, False, False]
    assert "en-todo" not in html.replace('class="en-todo"', "")


def test_encrypted_blocks_are_replaced_and_never_carried():
    html = convert_enml_to_html(
        '<en-note><en-crypt hint="pet" cipher="AES">U2VjcmV0UGF5bG9hZA==</en-crypt></en-note>'
    )

    assert ENCRYPTED_PLACEHOLDER in html
    assert "U2VjcmV0UGF5bG9hZA==" not in html
    assert "en-crypt>" not in html


# ---------------------------------------------------------------------------
# Sanitization
# ---------------------------------------------------------------------------
HOSTILE = (
    "<en-note>"
    '<div onclick="steal()" ONMOUSEOVER="steal()">'
    '<a href="JaVaScRiPt:alert(1)">js</a>'
    '<a href=" java\tscript:alert(1)">split</a>'
    '<a href="data:text/html;base64,PHNjcmlwdD4=">data link</a>'
    '<img src="data:image/png;base64,iVBORw0KGgo=" alt="inline"/>'
    "<SCRIPT>alert(1)</SCRIPT>"
    "<style>body{}</style>"
    '<iframe src="https://evil"></iframe>'
    "<object><embed src='x'/></object>"
    "<form action='/x'><button>go</button><input type='submit'/></form>"
    "<p>safe text</p>"
    "</div>"
    "</en-note>"
)


def test_sanitization_removes_handlers_scripts_and_dangerous_urls():
    html = convert_enml_to_html(HOSTILE)
    lowered = html.lower()

    for needle in ("onclick", "onmouseover", "javascript:", "<script", "<style", "<iframe",
                   "<object", "<embed", "<form", "<button", 'type="submit"', "data:text/html"):
        assert needle not in lowered

    soup = soup_of(html)
    assert [a["href"] for a in soup.find_all("a")] == ["#", "#", "#"]
    assert soup.find("img")["src"].startswith("data:image/png")
    assert soup.find("p").get_text() == "safe text"


@pytest.mark.parametrize(
    "enml",
    [
        "<en-note><![CDATA[><img src=x onerror=alert(1)>]]></en-note>",
        "<en-note><!--><img src=x onerror=alert(2)>--></en-note>",
        "<en-note><p>kept</p><!-- <script>alert(3)</script> --></en-note>",
    ],
)
def test_comments_and_cdata_never_reach_the_output(enml):
    html = convert_enml_to_html(enml)
    lowered = html.lower()

    assert "onerror" not in lowered
    assert "<!--" not in html
    assert "<![cdata[" not in lowered
    assert "<script" not in lowered
    assert convert_enml_to_html(html) == html


def test_comments_are_not_part_of_plaintext():
    assert extract_plain_text("<en-note><p>kept</p><!-- hidden --></en-note>") == "kept"


def test_dangerous_elements_are_removed_even_without_sanitize():
    html = convert_enml_to_html(HOSTILE, options=ConversionOptions(sanitize=False))
    lowered = html.lower()

    assert "<script" not in lowered
    assert "<iframe" not in lowered
    # Attribute cleanup is what the sanitize flag controls.
    assert "onclick" in lowered


def test_sanitizing_twice_is_stable():
    once = convert_enml_to_html(HOSTILE)
    assert convert_enml_to_html(once) == once


# ---------------------------------------------------------------------------
# Relative URL resolution
# ---------------------------------------------------------------------------
def test_base_url_resolves_relative_links_only():
    html = convert_enml_to_html(
        '<en-note><a href="/page">p</a><a href="#top">t</a><a href="https://other/x">o</a></en-note>',
        options=ConversionOptions(base_url="https://example.com/notes/"),
    )
    hrefs = [a["href"] for a in soup_of(html).find_all("a")]
    assert hrefs == ["https://example.com/page", "#top", "https://other/x"]


# ---------------------------------------------------------------------------
# Plain-text projection
# ---------------------------------------------------------------------------
def test_plaintext_has_no_markup_and_decodes_entities():
    text = extract_plain_text(
        PROLOG + "<en-note><div>a &lt; b &amp;&amp; c &gt; d</div><en-todo/>task"
        '<en-media hash="x" type="image/png"/><script>bad()</script></en-note>'
    )

    assert "<" not in text
    assert ">" not in text
    assert "en-note" not in text
    assert "en-media" not in text
    assert "bad()" not in text
    assert "a b && c d" in text
    assert "task" in text


def test_plaintext_collapses_whitespace():
    text = extract_plain_text("<en-note><p>  one\n\n two </p><p>three</p></en-note>")
    assert text == "one two three"


def test_malformed_markup_degrades_instead_of_raising():
    assert convert_enml_to_html("<en-note><div><b>unclosed") != ""
    assert extract_plain_text("<en-note><div><b>unclosed") == "unclosed"
    assert convert_enml_to_html("") == ""
