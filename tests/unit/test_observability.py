import logging

import pytest

from observability import log_event, span


@pytest.fixture
def events(monkeypatch):
    captured = []
    monkeypatch.setattr(
        "observability.tracing.log_event",
        lambda kind, session_id, **fields: captured.append((kind, session_id, fields)),
    )
    return captured


def test_span_reports_ok_outcome(events):
    with span("s1", "feedback_generator", turn_index=3):
        pass
    kind, session_id, fields = events[0]
    assert (kind, session_id) == ("span", "s1")
    assert fields["span"] == "feedback_generator"
    assert fields["outcome"] == "ok"
    assert fields["turn_index"] == 3
    assert fields["ms"] >= 0


def test_span_reports_error_and_reraises(events):
    with pytest.raises(RuntimeError):
        with span("s1", "question_generator"):
            raise RuntimeError("boom")
    assert events[0][2]["outcome"] == "error"


@pytest.fixture
def event_records(caplog):
    logger = logging.getLogger("interview_session.events")
    logger.addHandler(caplog.handler)
    caplog.set_level(logging.INFO, logger="interview_session.events")
    yield caplog
    logger.removeHandler(caplog.handler)


def test_log_event_writes_human_line(event_records):
    log_event("question_asked", "session-42", turn_index=2, dimension_id=1, ignored="x")
    messages = [record.getMessage() for record in event_records.records]
    assert "session=session-42 kind=question_asked turn_index=2 dimension_id=1" in messages


def test_log_event_respects_level(event_records):
    log_event("span", "quiet", level=logging.DEBUG)
    assert not any("session=quiet" in record.getMessage() for record in event_records.records)
