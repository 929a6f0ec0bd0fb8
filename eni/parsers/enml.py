"""
ENML (Evernote Markup Language) to HTML converter.

ENML is XHTML plus a handful of custom elements:

    <en-note>   document root            → <div class="en-note">
    <en-media>  embedded resource        → <img> / <audio> / <video> / <a>
    <en-todo>   checkbox                 → disabled <input type="checkbox">
    <en-crypt>  encrypted block          → fixed placeholder, never decrypted

The markup is parsed into a BeautifulSoup tree and rewritten node by node,
in this order:

    1. drop the XML prolog, DOCTYPE, comments, and CDATA sections
    2. rename <en-note> to <div class="en-note">, keeping its attributes
    3. resolve <en-media> against the note's ResourceHashMap
    4. rewrite <en-todo>
    5. replace <en-crypt>
    6. remove denylisted elements (script, style, frames, plugins, forms, buttons)
    7. optionally sanitize attributes (event handlers, javascript:/data: URLs)

The converter never raises on malformed markup: unknown elements pass
through, and references that cannot be resolved become visible placeholders.
"""

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, CData, Comment, Declaration, Doctype, ProcessingInstruction, Tag

from eni.models import DEFAULT_MIME_TYPE
from eni.types import ResourceHashMap, ResourceLink

HTML_PARSER = "html.parser"

DENYLISTED_TAGS = frozenset(
    {
        "script",
        "style",
        "iframe",
        "frame",
        "frameset",
        "object",
        "embed",
        "applet",
        "form",
        "button",
    }
)
DENYLISTED_INPUT_TYPES = frozenset({"submit", "button", "reset", "image"})

URL_ATTRIBUTES = frozenset(
    {"href", "src", "action", "formaction", "xlink:href", "poster", "background", "cite"}
)
# Targets a user navigates to; data: URLs are neutralized only here.
LINK_ATTRIBUTES = frozenset({"href", "xlink:href", "action", "formaction"})
SCRIPT_SCHEMES = ("javascript:", "vbscript:")

ENCRYPTED_PLACEHOLDER = "[Encrypted content - not imported]"

_DIGITS_RE = re.compile(r"^\d+$")
# Browsers ignore ASCII whitespace and control characters inside a scheme.
_URL_NOISE_RE = re.compile(r"[\x00-\x20]+")


@dataclass(frozen=True)
class ConversionOptions:
    """Options for convert_enml_to_html()."""

    sanitize: bool = True
    base_url: Optional[str] = None


# ============================================================================
# PUBLIC API
# ============================================================================


def convert_enml_to_html(
    enml: str,
    resource_map: Optional[ResourceHashMap] = None,
    options: Optional[ConversionOptions] = None,
) -> str:
    """
    Convert ENML to HTML.

    Parameters
    ----------
    enml : str
        Raw note content, including any XML prolog and DOCTYPE.
    resource_map : ResourceHashMap | None
        Content hash → resolved resource, built by the resource extractor for
        this note. Missing hashes render as placeholders.
    options : ConversionOptions | None
        Sanitization (default on) and optional base URL for relative links.

    Returns
    -------
    str
        The converted HTML, stripped of surrounding whitespace.
    """
    soup = _transform(enml, resource_map or {}, options or ConversionOptions())
    return soup.decode(formatter="minimal").strip()


def extract_plain_text(enml: str) -> str:
    """
    Project ENML to plain text for search indexing.

    Runs the full conversion with sanitization forced on and no resource map,
    then keeps only text content. Entities come back decoded, whitespace is
    collapsed, and angle brackets are replaced by spaces so the projection
    never carries markup syntax.
    """
    soup = _transform(enml, {}, ConversionOptions(sanitize=True))
    text = soup.get_text(" ")
    text = text.replace("<", " ").replace(">", " ")
    return " ".join(text.split())


# ============================================================================
# PIPELINE
# ============================================================================


def _transform(enml: str, resource_map: ResourceHashMap, options: ConversionOptions) -> BeautifulSoup:
    soup = BeautifulSoup(enml or "", HTML_PARSER)

    _strip_declarations(soup)
    _convert_en_note(soup)
    _convert_en_media(soup, resource_map)
    _convert_en_todo(soup)
    _convert_en_crypt(soup)
    _remove_denylisted(soup)

    if options.base_url:
        _resolve_relative_urls(soup, options.base_url)

    if options.sanitize:
        _sanitize(soup)

    return soup


def _strip_declarations(soup: BeautifulSoup) -> None:
    # Browsers end comments and CDATA at the first ">"; their payload must not survive.
    for node in list(soup.descendants):
        if isinstance(node, (ProcessingInstruction, Doctype, Declaration, Comment, CData)):
            node.extract()


def _convert_en_note(soup: BeautifulSoup) -> None:
    for tag in soup.find_all("en-note"):
        classes = tag.get("class") or []
        if isinstance(classes, str):
            classes = classes.split()

        attrs = {key: value for key, value in tag.attrs.items() if key != "class"}
        tag.name = "div"
        tag.attrs = {"class": " ".join(["en-note"] + [c for c in classes if c != "en-note"])}
        tag.attrs.update(attrs)


def _convert_en_media(soup: BeautifulSoup, resource_map: ResourceHashMap) -> None:
    for tag in soup.find_all("en-media"):
        _hoist_children(tag)
        tag.replace_with(_render_media(soup, tag, resource_map))


def _render_media(soup: BeautifulSoup, tag: Tag, resource_map: ResourceHashMap) -> Tag:
    raw_hash = _attr(tag, "hash")
    mime_type = (_attr(tag, "type") or DEFAULT_MIME_TYPE).lower()
    alt = _attr(tag, "alt") or "Attachment"

    resource: Optional[ResourceLink] = resource_map.get(raw_hash.lower()) if raw_hash else None
    if resource is None:
        placeholder = soup.new_tag(
            "div",
            attrs={"class": "en-media-placeholder", "data-hash": raw_hash, "data-type": mime_type},
        )
        placeholder.string = f"[Attachment: {alt}]"
        return placeholder

    url = resource.get("url", "")
    filename = resource.get("filename")
    width = _dimension(_attr(tag, "width")) or _dimension(resource.get("width"))
    height = _dimension(_attr(tag, "height")) or _dimension(resource.get("height"))

    if mime_type.startswith("image/"):
        img = soup.new_tag("img", attrs={"src": url, "alt": alt})
        _set_size(img, width, height)
        img["class"] = "en-media en-media-image"
        img["loading"] = "lazy"
        return img

    if mime_type.startswith("audio/"):
        audio = soup.new_tag("audio", attrs={"controls": "", "class": "en-media en-media-audio"})
        audio.append(soup.new_tag("source", attrs={"src": url, "type": mime_type}))
        audio.append("Your browser does not support audio.")
        return audio

    if mime_type.startswith("video/"):
        video = soup.new_tag("video", attrs={"controls": ""})
        _set_size(video, width, height)
        video["class"] = "en-media en-media-video"
        video.append(soup.new_tag("source", attrs={"src": url, "type": mime_type}))
        video.append("Your browser does not support video.")
        return video

    if mime_type == "application/pdf":
        link = soup.new_tag(
            "a",
            attrs={
                "href": url,
                "target": "_blank",
                "class": "en-media en-media-pdf",
                "download": filename or "document.pdf",
            },
        )
        link.string = filename or "PDF Document"
        return link

    link = soup.new_tag(
        "a",
        attrs={
            "href": url,
            "target": "_blank",
            "class": "en-media en-media-attachment",
            "download": filename or "attachment",
        },
    )
    link.string = filename or "Attachment"
    return link


def _convert_en_todo(soup: BeautifulSoup) -> None:
    for tag in soup.find_all("en-todo"):
        _hoist_children(tag)
        checkbox = soup.new_tag("input", attrs={"type": "checkbox", "class": "en-todo"})
        if _attr(tag, "checked").lower() == "true":
            checkbox["checked"] = ""
        checkbox["disabled"] = ""
        tag.replace_with(checkbox)


def _convert_en_crypt(soup: BeautifulSoup) -> None:
    while True:
        tag = soup.find("en-crypt")
        if tag is None:
            break
        placeholder = soup.new_tag("div", attrs={"class": "en-crypt-placeholder"})
        placeholder.string = ENCRYPTED_PLACEHOLDER
        tag.replace_with(placeholder)
        tag.decompose()


def _remove_denylisted(soup: BeautifulSoup) -> None:
    # One at a time: decomposing a parent invalidates its descendants.
    while True:
        tag = soup.find(_is_denylisted)
        if tag is None:
            break
        tag.decompose()


def _is_denylisted(tag: Tag) -> bool:
    if tag.name in DENYLISTED_TAGS:
        return True
    return tag.name == "input" and _attr(tag, "type").lower() in DENYLISTED_INPUT_TYPES


def _resolve_relative_urls(soup: BeautifulSoup, base_url: str) -> None:
    for tag in soup.find_all(True):
        for name in ("href", "src"):
            value = _attr(tag, name)
            if value and not value.startswith("#") and not urlsplit(value).scheme:
                tag[name] = urljoin(base_url, value)


def _sanitize(soup: BeautifulSoup) -> None:
    for tag in soup.find_all(True):
        for name in list(tag.attrs):
            lowered = name.lower()
            if lowered.startswith("on"):
                del tag[name]
                continue

            if lowered not in URL_ATTRIBUTES:
                continue

            target = _URL_NOISE_RE.sub("", _attr(tag, name)).lower()
            if target.startswith(SCRIPT_SCHEMES):
                tag[name] = "#"
            elif lowered in LINK_ATTRIBUTES and target.startswith("data:"):
                tag[name] = "#"


# ============================================================================
# HELPERS
# ============================================================================


def _attr(tag: Tag, name: str) -> str:
    """Attribute value as a stripped string ('' when absent)."""
    value = tag.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        value = " ".join(value)
    return str(value).strip()


def _dimension(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value if _DIGITS_RE.match(value) else None


def _set_size(tag: Tag, width: Optional[str], height: Optional[str]) -> None:
    if width:
        tag["width"] = width
    if height:
        tag["height"] = height


def _hoist_children(tag: Tag) -> None:
    """Move a custom element's children out before it is replaced."""
    for child in reversed(list(tag.contents)):
        tag.insert_after(child.extract())
