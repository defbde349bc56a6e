"""Tests for the polling service."""

import logging
import threading

import pytest

from amp_monitor import poller as poller_module
from amp_monitor.config import MonitorConfig
from amp_monitor.protocol import Command
from amp_monitor.poller import StatusPoller, main, setup_logging
from tests.simulator import alarms_payload


def make_config(sim, **overrides):
    values = dict(
        hosts=["127.0.0.1"],
        device_port=sim.port,
        timeout=0.2,
        max_channels=4,
        poll_interval=0.05,
    )
    values.update(overrides)
    return MonitorConfig(**values)


def test_poll_once(full_amplifier):
    poller = StatusPoller(make_config(full_amplifier))
    results = poller.poll_once()

    status = results["127.0.0.1"]
    assert status.power is True
    assert status.channels[1].mute is True
    assert poller.last_status == results


def test_poll_once_logs_variables(full_amplifier, caplog):
    poller = StatusPoller(make_config(full_amplifier))
    with caplog.at_level(logging.DEBUG, logger="amp_monitor.poller"):
        poller.poll_once()
    assert "power_127_0_0_1" in caplog.text


def test_summary(full_amplifier):
    poller = StatusPoller(make_config(full_amplifier))
    summary = poller._summarize(poller.poll_once())
    assert summary == "127.0.0.1 power=on alarms=FAULT"


def test_start_stop(full_amplifier):
    poller = StatusPoller(make_config(full_amplifier))
    thread = threading.Thread(target=poller.start)
    thread.start()
    try:
        for _ in range(100):
            if poller.last_status:
                break
            threading.Event().wait(0.02)
    finally:
        poller.stop()
        thread.join(timeout=2.0)

    assert not thread.is_alive()
    assert poller.last_status["127.0.0.1"].power is True


def test_loop_stops_after_consecutive_errors(full_amplifier, monkeypatch):
    poller = StatusPoller(make_config(full_amplifier, max_consecutive_errors=2))

    def broken():
        raise RuntimeError("boom")

    monkeypatch.setattr(poller, "poll_once", broken)
    poller.start()

    assert poller.consecutive_errors == 2
    assert poller.running is False


def test_telemetry_disabled_has_no_client(full_amplifier):
    poller = StatusPoller(make_config(full_amplifier))
    poller._init_influxdb()
    assert poller.influx_client is None


class RecordingPoint:
    """Stand-in for influxdb_client_3.Point that keeps tags and fields."""

    def __init__(self, measurement):
        self.measurement = measurement
        self.tags = {}
        self.fields = {}
        self.timestamp = None

    def tag(self, key, value):
        self.tags[key] = value
        return self

    def field(self, key, value):
        self.fields[key] = value
        return self

    def time(self, timestamp):
        self.timestamp = timestamp
        return self


class RecordingClient:
    def __init__(self):
        self.writes = []

    def write(self, record):
        self.writes.append(record)

    def close(self):
        pass


@pytest.fixture
def recording_influx(monkeypatch):
    monkeypatch.setattr(poller_module, "Point", RecordingPoint, raising=False)
    return RecordingClient()


def test_telemetry_points(full_amplifier, recording_influx):
    poller = StatusPoller(make_config(full_amplifier))
    poller.influx_client = recording_influx
    poller.poll_once()

    assert len(recording_influx.writes) == 1
    points = recording_influx.writes[0]
    device, channels = points[0], points[1:]

    assert device.measurement == "amp_status"
    assert device.tags == {"host": "127.0.0.1"}
    assert device.fields == {"power": 1, "fault": 1}
    assert len(channels) == 4
    assert [p.measurement for p in channels] == ["amp_channel"] * 4
    assert [p.tags["channel"] for p in channels] == ["1", "2", "3", "4"]
    assert all(p.tags["host"] == "127.0.0.1" for p in channels)
    assert channels[0].fields["gain"] == -3.5
    assert channels[0].fields["clip"] == 1
    assert channels[1].fields["mute"] == 1
    assert all(p.timestamp == device.timestamp for p in channels)


def test_telemetry_omits_unknown_fields(amplifier, recording_influx):
    amplifier.responses[Command.READALLALARMS2] = alarms_payload(0, [0, 0])
    poller = StatusPoller(make_config(amplifier, timeout=0.1, max_channels=2))
    poller.influx_client = recording_influx
    poller.poll_once()

    points = recording_influx.writes[0]
    device = points[0]
    assert device.fields == {"fault": 0}
    assert "power" not in device.fields
    assert [p.tags["channel"] for p in points[1:]] == ["1", "2"]
    assert "gain" not in points[1].fields
    assert "mute" not in points[1].fields
    assert points[1].fields["clip"] == 0


def test_telemetry_skipped_without_data(amplifier, recording_influx):
    poller = StatusPoller(make_config(amplifier, timeout=0.1, max_channels=2))
    poller.influx_client = recording_influx
    poller.poll_once()

    assert recording_influx.writes == []


def test_main_missing_config(tmp_path):
    assert main([str(tmp_path / "missing.yaml")]) == 1


def test_setup_logging_file(tmp_path):
    log_file = tmp_path / "monitor.log"
    root = logging.getLogger()
    saved = root.handlers[:], root.level
    try:
        setup_logging("INFO", str(log_file))
        logging.getLogger("amp_monitor.test").info("hello")
        for handler in root.handlers:
            handler.flush()
        assert "hello" in log_file.read_text()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers, level = saved
        root.setLevel(level)
