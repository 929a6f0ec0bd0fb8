from datetime import datetime, timezone

import pytest

from eni.exceptions import ParseError
from eni.models import DEFAULT_MIME_TYPE
from eni.parsers.enex import is_valid_enex, parse_enex, parse_evernote_date
from tests.fixtures.enex_builder import build_enex, note, resource


# ---------------------------------------------------------------------------
# Document-level parsing
# ---------------------------------------------------------------------------
def test_sample_export_parses_notes_in_document_order(load_text_fixture):
    doc = parse_enex(load_text_fixture("sample.enex"))

    assert [n.title for n in doc.notes] == ["Grocery List", "Trip Photo", "Meeting Notes"]
    assert doc.export_date == "20240301T120000Z"
    assert doc.application == "Evernote"
    assert doc.version == "10.68.2"
    assert doc.rejected == ()


def test_note_metadata_tags_and_attributes(load_text_fixture):
    grocery = parse_enex(load_text_fixture("sample.enex")).notes[0]

    assert grocery.created == "20240115T093000Z"
    assert grocery.updated == "20240116T101500Z"
    assert grocery.tags == ("Home", "Shopping")
    assert grocery.attributes.author == "Dana"
    assert grocery.attributes.source_url == "https://example.com/list"
    assert grocery.attributes.latitude == pytest.approx(52.52)
    assert grocery.attributes.longitude == pytest.approx(13.405)
    assert grocery.attributes.altitude is None
    assert "<li>Milk</li>" in grocery.content


def test_resource_fields_are_extracted(load_text_fixture):
    photo = parse_enex(load_text_fixture("sample.enex")).notes[1]

    assert len(photo.resources) == 1
    res = photo.resources[0]
    # Line breaks around the base64 payload are not part of the data.
    assert res.data == "dGlueS1wbmctcGF5bG9hZA=="
    assert res.mime == "image/png"
    assert res.width == 640
    assert res.height == 480
    assert res.file_name == "beach photo.png"


def test_bytes_input_is_accepted(load_text_fixture):
    raw = load_text_fixture("sample.enex").encode("utf-8")
    assert len(parse_enex(raw).notes) == 3


def test_leading_byte_order_mark_is_ignored():
    content = "\ufeff" + build_enex([note("A", "<div>a</div>")])
    assert parse_enex(content).notes[0].title == "A"


def test_empty_export_has_no_notes():
    doc = parse_enex(build_enex([]))
    assert doc.notes == ()
    assert doc.rejected == ()


def test_unknown_elements_are_ignored(load_text_fixture):
    meeting = parse_enex(load_text_fixture("sample.enex")).notes[2]
    assert meeting.title == "Meeting Notes"
    assert meeting.tags == ("Work",)


# ---------------------------------------------------------------------------
# Document-fatal failures
# ---------------------------------------------------------------------------
@pytest.mark.parametrize(
    "content",
    [
        "",
        "   ",
        "<en-export><note>",
        "not xml at all",
        '<?xml version="1.0"?><html><body/></html>',
    ],
)
def test_malformed_or_foreign_documents_raise_parse_error(content):
    with pytest.raises(ParseError):
        parse_enex(content)


# ---------------------------------------------------------------------------
# Note-level rejection
# ---------------------------------------------------------------------------
def test_notes_missing_title_or_content_are_rejected_not_fatal():
    doc = parse_enex(
        build_enex(
            [
                note("Kept", "<div>ok</div>"),
                note(None, "<div>no title</div>"),
                note("No Body", None),
                note("   ", "<div>blank title</div>"),
            ]
        )
    )

    assert [n.title for n in doc.notes] == ["Kept"]
    assert [(r.index, r.reason) for r in doc.rejected] == [
        (1, "missing title"),
        (2, "missing content"),
        (3, "missing title"),
    ]
    assert doc.rejected[1].title == "No Body"
    assert doc.rejected[0].title == "Untitled"


def test_duplicate_and_blank_tags_are_dropped():
    doc = parse_enex(build_enex([note("T", "<div/>", tags=["Work", " Work ", "", "work"])]))
    assert doc.notes[0].tags == ("Work", "work")


# ---------------------------------------------------------------------------
# Resource edge cases
# ---------------------------------------------------------------------------
def test_missing_or_invalid_mime_defaults_to_octet_stream():
    doc = parse_enex(
        build_enex(
            [
                note(
                    "M",
                    "<div/>",
                    resources=[
                        resource(b"a", mime=""),
                        resource(b"b", mime="not a mime"),
                        resource(b"c", mime="Image/PNG"),
                    ],
                )
            ]
        )
    )
    mimes = [r.mime for r in doc.notes[0].resources]
    assert mimes == [DEFAULT_MIME_TYPE, DEFAULT_MIME_TYPE, "image/png"]


def test_resource_without_data_is_skipped_with_warning():
    doc = parse_enex(build_enex([note("R", "<div/>", resources=[resource(b"", raw_data="")])]))

    assert doc.notes[0].resources == ()
    assert doc.warnings == ('Resource 0 of "R" has no data and was skipped',)


def test_undecodable_base64_is_kept_for_the_extractor():
    # Decoding is the extractor's job; the parser must not reject the note.
    doc = parse_enex(build_enex([note("R", "<div/>", resources=[resource(b"", raw_data="@@@")])]))
    assert doc.notes[0].resources[0].data == "@@@"


# ---------------------------------------------------------------------------
# is_valid_enex
# ---------------------------------------------------------------------------
def test_is_valid_enex_accepts_exports(load_text_fixture):
    text = load_text_fixture("sample.enex")
    assert is_valid_enex(text)
    assert is_valid_enex(text.encode("utf-8"))
    assert is_valid_enex('<?xml version="1.0"?><en-export/>')


@pytest.mark.parametrize(
    "content",
    [
        "",
        "<html><body>hello</body></html>",
        "<en-export>truncated",
        "plain text mentioning en-export",
    ],
)
def test_is_valid_enex_rejects_other_content(content):
    assert not is_valid_enex(content)


# ---------------------------------------------------------------------------
# parse_evernote_date
# ---------------------------------------------------------------------------
def test_compact_dates_parse_to_utc():
    assert parse_evernote_date("20240115T093000Z") == datetime(
        2024, 1, 15, 9, 30, 0, tzinfo=timezone.utc
    )


def test_iso_dates_are_accepted():
    assert parse_evernote_date("2024-01-15T09:30:00Z") == datetime(
        2024, 1, 15, 9, 30, 0, tzinfo=timezone.utc
    )
    assert parse_evernote_date("2024-01-15T10:30:00+01:00") == datetime(
        2024, 1, 15, 9, 30, 0, tzinfo=timezone.utc
    )


@pytest.mark.parametrize("value", [None, "", "yesterday", "20241345T990000Z"])
def test_unparseable_dates_return_none(value):
    assert parse_evernote_date(value) is None
