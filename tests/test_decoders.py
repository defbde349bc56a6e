"""Tests for response payload decoders."""

import struct

from amp_monitor.decoders import (
    ChannelAlarms,
    parse_alarms,
    parse_gain_mute,
    parse_standby,
)
from tests.simulator import alarms_payload, gain_mute_payload, standby_payload


def test_standby_operative_is_power_on():
    assert parse_standby(standby_payload(2)).power is True


def test_standby_on_is_power_off():
    assert parse_standby(standby_payload(1)).power is False


def test_standby_unknown_state():
    reply = parse_standby(standby_payload(7))
    assert reply.ok
    assert reply.raw_state == 7
    assert reply.power is None


def test_standby_not_ok():
    reply = parse_standby(standby_payload(2, ok=0))
    assert not reply.ok
    assert reply.power is None


def test_standby_short_payload():
    assert parse_standby(b"\x01").ok is False


def test_gain_mute_decodes_channels():
    reply = parse_gain_mute(gain_mute_payload([(1.5, -12.25, 0, 1), (-0.5, 3.0, 1, 0)]), 8)

    assert reply.ok
    assert reply.reported_channels == 2
    assert len(reply.channels) == 2
    first = reply.channels[0]
    assert first.input_gain == 1.5
    assert first.output_gain == -12.25
    assert first.input_mute is False
    assert first.output_mute is True
    assert first.gain == -12.25
    assert first.mute is True
    assert reply.channels[1].mute is False


def test_gain_mute_negative_gain_is_signed():
    data = b"\x01\x01" + struct.pack('<hhBB', -8000, -32768, 0, 0)
    reply = parse_gain_mute(data, 4)
    assert reply.channels[0].input_gain == -80.0
    assert reply.channels[0].output_gain == -327.68


def test_gain_mute_stops_at_buffer_end():
    """A declared count beyond the data yields fewer channels, not an error."""
    data = gain_mute_payload([(0.0, 1.0, 0, 0), (0.0, 2.0, 0, 0)], reported=4)
    data += b"\x00\x00\x00"  # partial third record
    reply = parse_gain_mute(data, 8)
    assert reply.ok
    assert reply.reported_channels == 4
    assert [ch.gain for ch in reply.channels] == [1.0, 2.0]


def test_gain_mute_capped_at_max_channels():
    data = gain_mute_payload([(0.0, float(i), 0, 0) for i in range(8)])
    reply = parse_gain_mute(data, 2)
    assert len(reply.channels) == 2


def test_gain_mute_not_ok():
    reply = parse_gain_mute(gain_mute_payload([(0.0, 0.0, 0, 0)], ok=0), 4)
    assert not reply.ok


def test_gain_mute_empty_payload():
    assert parse_gain_mute(b"", 4).ok is False


def test_alarm_bit_positions():
    alarms = ChannelAlarms.from_word(0b10000011)
    assert alarms.clip
    assert alarms.thermal_soa
    assert alarms.low_load
    assert not alarms.over_temp
    assert not alarms.rail_fault
    assert not alarms.aux_current_fault
    assert not alarms.other_fault


def test_alarm_each_named_bit():
    expected = {
        0: 'clip',
        1: 'thermal_soa',
        3: 'over_temp',
        4: 'rail_fault',
        5: 'aux_current_fault',
        6: 'other_fault',
        7: 'low_load',
    }
    names = set(expected.values())
    for bit, name in expected.items():
        alarms = ChannelAlarms.from_word(1 << bit)
        assert getattr(alarms, name), name
        for other in names - {name}:
            assert not getattr(alarms, other), (bit, other)


def test_alarm_bit_two_has_no_named_flag():
    alarms = ChannelAlarms.from_word(1 << 2)
    assert not any([
        alarms.clip, alarms.thermal_soa, alarms.over_temp, alarms.rail_fault,
        alarms.aux_current_fault, alarms.other_fault, alarms.low_load,
    ])


def test_alarms_decode_words():
    reply = parse_alarms(alarms_payload(0, [0, 0x08, 0, 0], gpio=0x05), 8)
    assert reply.ok
    assert reply.fault
    assert reply.gpio == 0x05
    assert reply.global_word == 0
    assert len(reply.channels) == 4
    assert reply.channels[1].over_temp


def test_alarms_global_word_sets_fault():
    reply = parse_alarms(alarms_payload(0x100, [0, 0]), 8)
    assert reply.fault
    assert not any(ch.word for ch in reply.channels)


def test_alarms_no_fault():
    reply = parse_alarms(alarms_payload(0, [0] * 8), 8)
    assert reply.ok
    assert reply.fault is False


def test_alarms_truncated_to_max_channels():
    reply = parse_alarms(alarms_payload(0, [1, 2, 4, 8, 16, 32, 64, 128]), 2)
    assert [ch.word for ch in reply.channels] == [1, 2]


def test_alarms_fault_includes_unconfigured_channels():
    reply = parse_alarms(alarms_payload(0, [0, 0, 0x80]), 2)
    assert reply.fault
    assert len(reply.channels) == 2


def test_alarms_at_most_eight_words():
    reply = parse_alarms(alarms_payload(0, [1] * 10), 16)
    assert len(reply.channels) == 8


def test_alarms_partial_word_ignored():
    data = alarms_payload(0, [0x01]) + b"\x01\x00"
    reply = parse_alarms(data, 8)
    assert len(reply.channels) == 1


def test_alarms_not_ok_short_circuits():
    reply = parse_alarms(alarms_payload(0xFFFFFFFF, [0xFF]), 8)
    assert reply.ok
    refused = parse_alarms(alarms_payload(0xFFFFFFFF, [0xFF], ok=2), 8)
    assert not refused.ok
    assert not refused.fault
    assert refused.channels == ()


def test_alarms_accepted_but_truncated_is_not_ok():
    """An accepted answer too short for the global word carries no data."""
    reply = parse_alarms(b"\x01\x00", 8)
    assert not reply.ok
    assert reply.fault is False
    assert reply.global_word is None


def test_alarms_empty_payload():
    assert parse_alarms(b"", 8).ok is False
