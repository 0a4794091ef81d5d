import logging

import pytest
import structlog

from celine.keycloak_operator.events import ReconcileEventLogger, configure_event_logging


class FakeStructLogger:
    def __init__(self):
        self.calls = []

    def info(self, **kwargs):
        self.calls.append(("info", kwargs))

    def warning(self, **kwargs):
        self.calls.append(("warning", kwargs))

    def error(self, **kwargs):
        self.calls.append(("error", kwargs))


def _capture_levels(monkeypatch) -> dict:
    captured = {}

    def fake_basicConfig(*, level=None, **kwargs):
        captured["level"] = level

    orig_make = structlog.make_filtering_bound_logger

    def fake_make_filtering_bound_logger(level):
        captured["structlog_level"] = level
        return orig_make(level)

    monkeypatch.setattr(logging, "basicConfig", fake_basicConfig)
    monkeypatch.setattr(structlog, "make_filtering_bound_logger", fake_make_filtering_bound_logger)
    return captured


@pytest.mark.parametrize(
    "log_level, expected",
    [("INFO", logging.INFO), ("debug", logging.DEBUG), ("ERROR", logging.ERROR), (20, 20)],
)
def test_configure_event_logging_levels(monkeypatch, log_level, expected):
    captured = _capture_levels(monkeypatch)

    configure_event_logging(log_level=log_level, json_format=True)

    assert captured["level"] == expected
    assert captured["structlog_level"] == expected


def test_phase_change_logged_as_info():
    fake = FakeStructLogger()
    events = ReconcileEventLogger(logger=fake)

    events.phase_changed(resource="sso/keycloak", previous="initialising", phase="reconciling", ready=True)

    assert len(fake.calls) == 1
    level, payload = fake.calls[0]
    assert level == "info"
    assert payload["event"] == "phase_changed"
    assert payload["resource"] == "sso/keycloak"
    assert payload["previous"] == "initialising"
    assert payload["ready"] is True
    assert "message" not in payload


def test_failing_phase_logged_as_warning_with_message():
    fake = FakeStructLogger()
    events = ReconcileEventLogger(logger=fake)

    events.phase_changed(
        resource="sso/keycloak", previous="reconciling", phase="failing", ready=False, message="boom"
    )

    level, payload = fake.calls[0]
    assert level == "warning"
    assert payload["message"] == "boom"


def test_scope_sync_logging():
    fake = FakeStructLogger()
    events = ReconcileEventLogger(logger=fake)

    events.scopes_synced(client_id="svc", realm="celine", added=["k"], removed=["u"], errors=[])
    events.scopes_synced(client_id="svc", realm="celine", added=[], removed=[], errors=["bad"])

    (ok_level, ok), (err_level, err) = fake.calls
    assert ok_level == "info"
    assert ok["added"] == ["k"]
    assert ok["removed"] == ["u"]
    assert "errors" not in ok
    assert err_level == "error"
    assert err["errors"] == ["bad"]


def test_configure_event_logging_binds_service_name(monkeypatch):
    _capture_levels(monkeypatch)
    structlog.contextvars.clear_contextvars()
    try:
        configure_event_logging(log_level="INFO", json_format=True, service_name="operator-test")
        assert structlog.contextvars.get_contextvars()["service"] == "operator-test"
    finally:
        structlog.contextvars.clear_contextvars()
        structlog.reset_defaults()
