"""Parsing of WebDAV ``PROPFIND`` multistatus responses."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Iterator, List, Optional
from urllib.parse import urlsplit

from tenderaudit.errors import ProtocolError
from tenderaudit.models import DirectoryEntry
from tenderaudit.utils.paths import last_segment

LOGGER = logging.getLogger(__name__)

PROPFIND_BODY = (
    '<?xml version="1.0" encoding="utf-8"?>'
    '<D:propfind xmlns:D="DAV:"><D:prop>'
    "<D:resourcetype/><D:getcontentlength/><D:getlastmodified/><D:creationdate/>"
    "</D:prop></D:propfind>"
)


def _local(tag: str) -> str:
    # "{DAV:}href", "D:href" and "href" all reduce to "href"
    return tag.rsplit("}", 1)[-1].rsplit(":", 1)[-1].lower()


def _children(element: ET.Element, name: str) -> Iterator[ET.Element]:
    for child in element:
        if _local(child.tag) == name:
            yield child


def _first(element: ET.Element, name: str) -> Optional[ET.Element]:
    return next(_children(element, name), None)


def _text(element: Optional[ET.Element]) -> Optional[str]:
    if element is None or element.text is None:
        return None
    value = element.text.strip()
    return value or None


def _is_ok(propstat: ET.Element) -> bool:
    status = _text(_first(propstat, "status"))
    return status is None or " 200 " in f"{status} "


def _parse_size(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        LOGGER.debug("Ignoring non-numeric content length %r", raw)
        return None


def _parse_response(node: ET.Element) -> DirectoryEntry:
    href = _text(_first(node, "href"))
    if not href:
        raise ProtocolError("Multistatus response entry without href")
    if "://" in href:
        href = urlsplit(href).path

    props: dict[str, ET.Element] = {}
    for propstat in _children(node, "propstat"):
        if not _is_ok(propstat):
            continue
        prop = _first(propstat, "prop")
        if prop is None:
            continue
        for child in prop:
            props.setdefault(_local(child.tag), child)

    resource_type = props.get("resourcetype")
    is_directory = resource_type is not None and _first(resource_type, "collection") is not None

    return DirectoryEntry(
        name=last_segment(href),
        path=href,
        kind="directory" if is_directory else "file",
        size=None if is_directory else _parse_size(_text(props.get("getcontentlength"))),
        last_modified=_text(props.get("getlastmodified")),
        created_at=_text(props.get("creationdate")),
    )


def parse_multistatus(payload: str | bytes) -> List[DirectoryEntry]:
    """Turn a depth-1 ``PROPFIND`` body into directory entries, in document order."""
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as exc:
        raise ProtocolError(f"Invalid WebDAV XML: {exc}") from exc

    if _local(root.tag) != "multistatus":
        raise ProtocolError(f"Missing multistatus element, got <{root.tag}>")

    return [_parse_response(node) for node in _children(root, "response")]
