"""
Envelope codec for the Tally XML interface.

Builds outbound request envelopes and parses inbound responses into a
navigable tree. Pure and synchronous; no I/O happens here.

Tally sometimes produces XML with control characters or bare ampersands,
so responses are sanitized before parsing.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from datetime import datetime, date
from typing import Optional, Union
from lxml import etree
from loguru import logger

from ..requests import render

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
_XML_DECLARATION = re.compile(r"^\ufeff?\s*<\?xml[^>]*\?>")


def sanitize_xml(xml_text: str) -> str:
    """
    Remove invalid XML characters and fix common issues.

    Strips numeric references to control characters (Tally emits ``&#4;``),
    raw control characters, and escapes ampersands that do not start an entity.
    """
    if not xml_text:
        return xml_text

    xml_text = xml_text.replace("\x00", "")

    # &#0; through &#31; except tab, newline, CR
    xml_text = re.sub(r"&#([0-8]|1[12]|1[4-9]|2[0-9]|3[01]);", "", xml_text)
    xml_text = re.sub(r"&#x([0-8bBcCeEfF]|1[0-9a-fA-F]);", "", xml_text)

    xml_text = re.sub(r"[\x01-\x08\x0B\x0C\x0E-\x1F]", "", xml_text)

    xml_text = re.sub(r"&(?!(amp|lt|gt|apos|quot|#\d+|#x[\da-fA-F]+);)", "&amp;", xml_text)
    return xml_text


@dataclass(frozen=True)
class ParsedDocument:
    """A successfully parsed response."""
    root: etree._Element
    raw_xml: str

    def find_all(self, xpath: str) -> list[etree._Element]:
        return self.root.findall(xpath)

    def find_one(self, xpath: str) -> etree._Element | None:
        return self.root.find(xpath)

    def first_value(self, tag_name: str) -> str:
        return get_first_tag_value(self, tag_name)


@dataclass(frozen=True)
class ParseFailure:
    """Structured result for text that is not well-formed XML."""
    error: str
    raw_xml: str

    def __bool__(self) -> bool:
        return False


ParseResult = Union[ParsedDocument, ParseFailure]


def build_request(request_kind: str, body_fragment: str) -> str:
    """
    Wrap a body fragment in a Tally request envelope.

    ``request_kind`` lands in HEADER/TALLYREQUEST (``Export Data``,
    ``Import Data``); ``body_fragment`` is inserted verbatim into BODY.
    """
    return render("envelope", request_kind=request_kind, body=body_fragment)


def parse_envelope(xml_text: str) -> ParseResult:
    """Parse response text. Malformed input yields a ParseFailure, never an exception."""
    try:
        sanitized = sanitize_xml(xml_text or "")
        # text is already decoded; a declared encoding such as UTF-16 is stale
        sanitized = _XML_DECLARATION.sub("", sanitized, count=1)
        root = etree.fromstring(sanitized.encode("utf-8"), parser=_PARSER)
    except (etree.XMLSyntaxError, ValueError) as e:
        logger.warning(f"XML parse error: {e}")
        return ParseFailure(error=str(e), raw_xml=xml_text or "")
    return ParsedDocument(root=root, raw_xml=xml_text)


def get_first_tag_value(node: ParsedDocument | etree._Element | None, tag_name: str) -> str:
    """
    Text content of the first element named ``tag_name``, or "" if absent.

    For a ParsedDocument the root element itself is a candidate; for an
    element only its descendants are searched.
    """
    if node is None:
        return ""
    if isinstance(node, ParsedDocument):
        match = next(node.root.iter(tag_name), None)
    else:
        match = next((el for el in node.iter(tag_name) if el is not node), None)
    if match is None:
        return ""
    return "".join(match.itertext())


def ensure_status_ok(doc: ParsedDocument) -> Optional[str]:
    """
    Return an error message if the envelope carries STATUS other than 1.

    Many exports omit STATUS entirely; that counts as success.
    """
    status = doc.root.findtext(".//STATUS")
    if status is not None and status.strip() != "1":
        msg = doc.root.findtext(".//LINEERROR") or doc.root.findtext(".//ERROR") or ""
        return f"Tally returned STATUS={status.strip()}{(' - ' + msg.strip()) if msg else ''}"
    return None


def text(element: etree._Element | None, tag: str, default: str | None = None) -> str | None:
    """Stripped text of a direct child, or default."""
    if element is None:
        return default
    child = element.find(tag)
    if child is None or child.text is None:
        return default
    return child.text.strip() or default


def parse_tally_date(s: str | None) -> Optional[date]:
    """
    Parse a Tally date string.

    Tally uses YYYYMMDD most of the time, DD-Mon-YYYY in report headers.
    Returns None for empty or unparseable strings.
    """
    if not s:
        return None
    s = s.strip()
    for fmt in ("%Y%m%d", "%Y-%m-%d", "%d-%b-%Y", "%d/%m/%Y"):
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    logger.warning(f"Could not parse date: {s}")
    return None


def parse_float(s: str | None, default: float = 0.0) -> float:
    """
    Parse a Tally amount.

    Handles comma separators, parentheses for negatives and currency symbols.
    """
    if not s:
        return default
    s = s.strip()
    neg = s.startswith("(") and s.endswith(")")
    if neg:
        s = s[1:-1]
    s = re.sub(r"[,₹$€£¥\s]", "", s)
    try:
        val = float(s)
    except ValueError:
        logger.warning(f"Could not parse float: {s}")
        return default
    return -val if neg else val


def parse_quantity(s: str | None) -> tuple[float, str]:
    """Split a Tally quantity such as ``"10 box"`` into (10.0, "box")."""
    if not s:
        return 0.0, ""
    parts = s.strip().split(None, 1)
    qty = parse_float(parts[0])
    unit = parts[1].strip() if len(parts) > 1 else ""
    return qty, unit
