import io
from datetime import datetime
from zoneinfo import ZoneInfo

from itinerary.models import EventRecord, ViewResult
from itinerary.render import TextSink, format_event

UTC = ZoneInfo("UTC")


def _event(title: str, **kwargs) -> EventRecord:
    kwargs.setdefault("start", datetime(2024, 1, 1, tzinfo=UTC))
    kwargs.setdefault("end", None)
    return EventRecord(title=title, **kwargs)


def test_format_all_day_event():
    single = _event("New Year", all_day=True)
    span = _event("Trip", all_day=True, end=datetime(2024, 1, 3, tzinfo=UTC), tags=("travel",))

    assert format_event(single) == "January 1, 2024 (all day)  New Year"
    assert format_event(span) == "January 1, 2024 - January 3, 2024 (all day)  Trip  #travel"


def test_format_timed_event():
    paris = ZoneInfo("Europe/Paris")
    event = _event(
        "Flight",
        start=datetime(2024, 3, 1, 10, 0, tzinfo=paris),
        end=datetime(2024, 3, 1, 12, 30, tzinfo=paris),
    )

    assert format_event(event) == "March 1, 2024 10:00 am CET - March 1, 2024 12:30 pm CET  Flight"


def test_sink_sorts_and_hides():
    out = io.StringIO()
    result = ViewResult(
        view_id="cal",
        events=(
            _event("Later", start=datetime(2024, 1, 2, tzinfo=UTC)),
            _event("Hidden", hidden=True),
            _event("Sooner"),
        ),
        changed=True,
        messages=("Filter #0 'true' compiled",),
    )

    TextSink(out).render(result)

    lines = out.getvalue().splitlines()
    assert lines[0] == "== cal (2 events)"
    assert "Sooner" in lines[1]
    assert "Later" in lines[2]
    assert lines[3] == "  [debug] Filter #0 'true' compiled"


def test_sink_skips_unchanged_results():
    out = io.StringIO()

    TextSink(out).render(ViewResult(view_id="cal", events=(_event("A"),), changed=False))

    assert out.getvalue() == ""


def test_sink_renders_errors():
    out = io.StringIO()

    TextSink(out).render_error("cal", "Itinerary source 'x.md' could not be found.")

    assert out.getvalue() == "!! cal: Itinerary source 'x.md' could not be found.\n"
