"""XML encoding and decoding for error payloads.

The document is an ``<Error>`` element holding an optional ``<Code>``, a
``<Metas>`` wrapper with one ``<Meta>`` per message, and a ``<Fields>`` wrapper
whose children are named after the field they describe::

    <Error><Code>400</Code><Metas><Meta>Not Found</Meta></Metas><Fields><ID>Missing ID</ID></Fields></Error>
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET

from defusedxml.ElementTree import fromstring as defused_fromstring

from errorset.schemas.error import ErrorPayload

ROOT_TAG = "Error"
CODE_TAG = "Code"
METAS_TAG = "Metas"
META_TAG = "Meta"
FIELDS_TAG = "Fields"

# XML 1.0 Name production without the namespace colon.
_NAME_START = (
    "A-Z_a-z"
    "\u00c0-\u00d6\u00d8-\u00f6\u00f8-\u02ff\u0370-\u037d\u037f-\u1fff\u200c-\u200d"
    "\u2070-\u218f\u2c00-\u2fef\u3001-\ud7ff\uf900-\ufdcf\ufdf0-\ufffd\U00010000-\U000effff"
)
_NAME_CHAR = _NAME_START + "\\-.0-9\u00b7\u0300-\u036f\u203f-\u2040"
_ELEMENT_NAME = re.compile(f"[{_NAME_START}][{_NAME_CHAR}]*")

# Characters outside the XML 1.0 Char production.
_INVALID_CHARS = re.compile("[^\t\n\r\u0020-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


class XMLEncodingError(ValueError):
    """Raised when an error payload cannot be expressed as an XML document."""


class XMLDecodingError(ValueError):
    """Raised when a well-formed XML document is not an error payload."""


def is_valid_element_name(name: str) -> bool:
    """Return whether ``name`` can be used as an element tag."""
    return _ELEMENT_NAME.fullmatch(name) is not None


def _xml_text(value: str) -> str:
    return _INVALID_CHARS.sub("\ufffd", value)


def render_xml(payload: ErrorPayload) -> str:
    """Serialize the payload to an ``<Error>`` document without XML declaration."""
    root = ET.Element(ROOT_TAG)
    if payload.code != 0:
        ET.SubElement(root, CODE_TAG).text = str(payload.code)

    metas = ET.SubElement(root, METAS_TAG)
    for message in payload.meta:
        ET.SubElement(metas, META_TAG).text = _xml_text(message)

    fields = ET.SubElement(root, FIELDS_TAG)
    for name, message in payload.fields.items():
        if not is_valid_element_name(name):
            raise XMLEncodingError(f"Field name {name!r} is not a valid XML element name")
        ET.SubElement(fields, name).text = _xml_text(message)

    return ET.tostring(root, encoding="unicode", short_empty_elements=False)


def parse_xml(document: str | bytes) -> ErrorPayload:
    """Decode an ``<Error>`` document produced by :func:`render_xml`."""
    root = defused_fromstring(document)
    if root.tag != ROOT_TAG:
        raise XMLDecodingError(f"Expected <{ROOT_TAG}> root element, got <{root.tag}>")

    code = 0
    code_element = root.find(CODE_TAG)
    if code_element is not None:
        raw_code = (code_element.text or "").strip()
        try:
            code = int(raw_code)
        except ValueError as exc:
            raise XMLDecodingError(f"Invalid <{CODE_TAG}> value: {raw_code!r}") from exc

    meta: list[str] = []
    metas_element = root.find(METAS_TAG)
    if metas_element is not None:
        meta = [element.text or "" for element in metas_element.findall(META_TAG)]

    fields: dict[str, str] = {}
    fields_element = root.find(FIELDS_TAG)
    if fields_element is not None:
        for element in fields_element:
            fields[element.tag] = element.text or ""

    return ErrorPayload(code=code, meta=meta, fields=fields)
