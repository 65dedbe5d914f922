"""Record decoder — turns EVTX containers and XML exports into DecodedRecords.

Binary ``.evtx`` files are read with ``evtx.PyEvtxParser``, which renders each
record as event XML. Exports produced by ``wevtutil qe /f:xml`` or Event
Viewer ("Save as XML") are read directly. Both paths share the same
element-to-record mapping.
"""

import copy
import logging
import os
import re
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone
from typing import Iterator

from evtx import PyEvtxParser

from evtx_timeline.errors import MalformedRecordError, SourceUnreadableError
from evtx_timeline.models import DecodedRecord, NamedItem, UnnamedItem

logger = logging.getLogger(__name__)

XML_EXTENSIONS = (".xml",)
EVTX_EXTENSIONS = (".evtx",)

SYSTEM_TIME_PATTERN = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[T ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?\s*(Z|[+-]\d{2}:?\d{2})?$"
)
XML_DECLARATION = re.compile(r"<\?xml[^>]*\?>")


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _strip_namespaces(elem: ET.Element) -> ET.Element:
    """Drop namespace URIs from tags and whitespace-only tails, in place."""
    for node in elem.iter():
        if isinstance(node.tag, str):
            node.tag = _local_name(node.tag)
        if node.tail is not None and not node.tail.strip():
            node.tail = None
    return elem


def _child(elem: ET.Element | None, name: str) -> ET.Element | None:
    if elem is None:
        return None
    for node in elem:
        if node.tag == name:
            return node
    return None


def parse_system_time(value: str) -> datetime:
    """Parse an event SystemTime attribute into an aware UTC datetime.

    Fractions longer than microseconds (Windows keeps 100ns ticks) are truncated.
    """
    match = SYSTEM_TIME_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Unrecognised SystemTime: {value!r}")
    date_part, time_part, fraction, offset = match.groups()
    micros = int((fraction or "0")[:6].ljust(6, "0"))
    dt = datetime.strptime(f"{date_part} {time_part}", "%Y-%m-%d %H:%M:%S")
    dt = dt.replace(microsecond=micros, tzinfo=timezone.utc)
    if offset and offset != "Z":
        sign = -1 if offset[0] == "-" else 1
        digits = offset[1:].replace(":", "")
        delta = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
        try:
            dt -= sign * delta
        except OverflowError as e:
            raise ValueError(f"SystemTime out of range: {value!r}") from e
    return dt


def _header_pairs(system: ET.Element | None) -> list[tuple[str, str]]:
    """Flatten the System section: element text and attributes as ElementAttr."""
    pairs = []
    if system is None:
        return pairs
    for node in system:
        text = (node.text or "").strip()
        if text:
            pairs.append((node.tag, text))
        for attr, value in node.attrib.items():
            pairs.append((node.tag + _local_name(attr), value))
    return pairs


def _payload_items(event_data: ET.Element | None) -> list:
    items = []
    if event_data is None:
        return items
    for node in event_data:
        name = node.get("Name")
        if name:
            items.append(NamedItem(name=name, text=node.text or ""))
        else:
            items.append(UnnamedItem(markup=_markup(node)))
    return items


def _markup(node: ET.Element) -> str:
    """Serialize *node* without the text that follows it in its parent."""
    node = copy.copy(node)
    node.tail = None
    return ET.tostring(node, encoding="unicode")


def _inner_markup(elem: ET.Element) -> str:
    text = elem.text if elem.text and elem.text.strip() else ""
    return text + "".join(ET.tostring(node, encoding="unicode") for node in elem)


def decode_event_element(
    event: ET.Element,
    reserved_header: str = "UserData",
    fallback_time: datetime | None = None,
) -> DecodedRecord:
    """Map one ``<Event>`` element to a DecodedRecord.

    Raises MalformedRecordError when no creation time can be determined.
    """
    event = _strip_namespaces(event)
    system = _child(event, "System")

    time_created = fallback_time
    time_node = _child(system, "TimeCreated")
    if time_node is not None and time_node.get("SystemTime"):
        try:
            time_created = parse_system_time(time_node.get("SystemTime"))
        except ValueError as e:
            if fallback_time is None:
                raise MalformedRecordError(str(e)) from e
    if time_created is None:
        raise MalformedRecordError("Event has no TimeCreated/SystemTime")

    header = _header_pairs(system)
    user_data = _child(event, "UserData")
    if user_data is not None:
        header.append((reserved_header, _inner_markup(user_data)))

    rendering = _child(event, "RenderingInfo")
    message_node = _child(rendering, "Message")
    message = message_node.text if message_node is not None and message_node.text else ""

    return DecodedRecord(
        time_created=time_created,
        message=message,
        header=tuple(header),
        payload=tuple(_payload_items(_child(event, "EventData"))),
    )


def decode_event_xml(
    xml_text: str,
    reserved_header: str = "UserData",
    fallback_time: datetime | None = None,
) -> DecodedRecord:
    """Decode a single record rendered as event XML."""
    try:
        event = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise MalformedRecordError(f"Invalid event XML: {e}") from e
    return decode_event_element(event, reserved_header, fallback_time)


def _fallback_time(raw: dict) -> datetime | None:
    value = raw.get("timestamp")
    if not value:
        return None
    try:
        return parse_system_time(value.replace(" UTC", "Z"))
    except ValueError:
        return None


def iter_evtx_records(path: str, reserved_header: str = "UserData") -> Iterator[DecodedRecord]:
    """Yield decoded records from a binary EVTX container."""
    try:
        parser = PyEvtxParser(path)
    except (OSError, RuntimeError) as e:
        raise SourceUnreadableError(f"Cannot open EVTX file {path}: {e}") from e

    try:
        for raw in parser.records():
            try:
                yield decode_event_xml(raw["data"], reserved_header, _fallback_time(raw))
            except MalformedRecordError as e:
                logger.warning(
                    "Skipping record %s in %s: %s", raw.get("event_record_id"), path, e
                )
    except (OSError, RuntimeError) as e:
        raise SourceUnreadableError(f"Cannot decode EVTX file {path}: {e}") from e


def iter_xml_records(
    path: str, reserved_header: str = "UserData", encoding: str = "utf-8"
) -> Iterator[DecodedRecord]:
    """Yield decoded records from an XML export.

    Accepts an ``<Events>`` document as well as bare concatenated ``<Event>``
    elements (the raw ``wevtutil qe`` output).
    """
    try:
        with open(path, "r", encoding=encoding) as f:
            text = f.read()
        root = ET.fromstring("<Events>" + XML_DECLARATION.sub("", text) + "</Events>")
    except (OSError, UnicodeDecodeError, ET.ParseError) as e:
        raise SourceUnreadableError(f"Cannot read XML export {path}: {e}") from e

    events = [node for node in root.iter() if _local_name(node.tag) == "Event"]
    for index, event in enumerate(events, 1):
        try:
            yield decode_event_element(event, reserved_header)
        except MalformedRecordError as e:
            logger.warning("Skipping event #%d in %s: %s", index, path, e)


def decode_source(
    path: str, reserved_header: str = "UserData", encoding: str = "utf-8"
) -> Iterator[DecodedRecord]:
    """Pick the decoder for *path* by extension (EVTX unless it looks like XML)."""
    ext = os.path.splitext(path)[1].lower()
    if ext in XML_EXTENSIONS:
        return iter_xml_records(path, reserved_header, encoding)
    return iter_evtx_records(path, reserved_header)


def load_records(
    path: str, reserved_header: str = "UserData", encoding: str = "utf-8"
) -> list[DecodedRecord]:
    """Decode *path* once into memory; discovery and flattening both iterate it."""
    return list(decode_source(path, reserved_header, encoding))
