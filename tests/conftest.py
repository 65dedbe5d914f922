from datetime import datetime, timezone
from xml.sax.saxutils import escape

import pytest

EVENT_NS = "http://schemas.microsoft.com/win/2004/08/events/event"


def build_event_xml(
    system_time="2024-01-01T00:00:00.5000000Z",
    event_id="4624",
    data=(),
    message=None,
    user_data=None,
    computer="WS01",
):
    """Render an <Event> element the way EVTX/wevtutil produce it.

    ``data`` items are ``(name, text)``; a ``None`` name yields an unnamed
    ``<Data>`` element.
    """
    time_elem = (
        f'<TimeCreated SystemTime="{system_time}"/>' if system_time is not None else ""
    )
    items = []
    for name, text in data:
        body = "" if text is None else escape(text)
        if name is None:
            items.append(f"<Data>{body}</Data>")
        else:
            items.append(f'<Data Name="{name}">{body}</Data>')
    event_data = f"<EventData>{''.join(items)}</EventData>" if data else ""
    user = f"<UserData>{user_data}</UserData>" if user_data else ""
    rendering = (
        f"<RenderingInfo Culture=\"en-US\"><Message>{escape(message)}</Message></RenderingInfo>"
        if message is not None else ""
    )
    return (
        f'<Event xmlns="{EVENT_NS}">\n'
        f"  <System>\n"
        f'    <Provider Name="Microsoft-Windows-Security-Auditing"/>\n'
        f"    <EventID>{event_id}</EventID>\n"
        f"    <Level>0</Level>\n"
        f"    {time_elem}\n"
        f"    <Computer>{computer}</Computer>\n"
        f"  </System>\n"
        f"  {event_data}{user}{rendering}\n"
        f"</Event>"
    )


@pytest.fixture
def event_xml():
    return build_event_xml


@pytest.fixture
def write_export(tmp_path):
    """Write a wevtutil-style XML export and return its path."""

    def _write(events, name="Security.xml", wrapped=True):
        body = "\n".join(events)
        if wrapped:
            body = f'<?xml version="1.0" encoding="utf-8"?>\n<Events>\n{body}\n</Events>\n'
        path = tmp_path / name
        path.write_text(body, encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def utc():
    def _utc(*args):
        return datetime(*args, tzinfo=timezone.utc)

    return _utc
