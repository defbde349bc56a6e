"""
Decoders for the response payloads of the read commands.

Every payload starts with an ``answer_ok`` byte; only ``1`` marks an
authoritative answer. Decoders never raise: short or refused payloads
yield a result with ``ok`` set to False.
"""

import struct
from dataclasses import dataclass
from typing import Optional, Tuple

ANSWER_OK = 0x01

# Standby read, byte 1
STANDBY_ON = 0x01   # amplifier in standby (power off)
STANDBY_OFF = 0x02  # amplifier operative (power on)

GM_CHANNEL_FORMAT = '<hhBB'
GM_CHANNEL_SIZE = struct.calcsize(GM_CHANNEL_FORMAT)

ALARM_HEADER_SIZE = 4  # answer_ok, gpio alarms, 2 reserved bytes
ALARM_WORD_SIZE = 4
MAX_ALARM_CHANNELS = 8

# Per-channel alarm word bits (hardware contract)
ALARM_BIT_CLIP = 0
ALARM_BIT_THERMAL_SOA = 1
ALARM_BIT_OVER_TEMP = 3
ALARM_BIT_RAIL_FAULT = 4
ALARM_BIT_AUX_CURRENT_FAULT = 5
ALARM_BIT_OTHER_FAULT = 6
ALARM_BIT_LOW_LOAD = 7


@dataclass(frozen=True)
class StandbyReply:
    """Decoded standby read."""

    ok: bool
    raw_state: Optional[int] = None

    @property
    def power(self) -> Optional[bool]:
        """True when operative, False in standby, None when unknown."""
        if not self.ok:
            return None
        if self.raw_state == STANDBY_OFF:
            return True
        if self.raw_state == STANDBY_ON:
            return False
        return None


@dataclass(frozen=True)
class ChannelGainMute:
    """Gain (dB) and mute state of one channel as reported by READGM."""

    input_gain: float
    output_gain: float
    input_mute: bool
    output_mute: bool

    @property
    def gain(self) -> float:
        return self.output_gain

    @property
    def mute(self) -> bool:
        return self.output_mute


@dataclass(frozen=True)
class GainMuteReply:
    """Decoded READGM table."""

    ok: bool
    reported_channels: int = 0
    channels: Tuple[ChannelGainMute, ...] = ()


@dataclass(frozen=True)
class ChannelAlarms:
    """Named flags of one per-channel alarm word."""

    word: int
    clip: bool = False
    thermal_soa: bool = False
    over_temp: bool = False
    rail_fault: bool = False
    aux_current_fault: bool = False
    other_fault: bool = False
    low_load: bool = False

    @classmethod
    def from_word(cls, word: int) -> 'ChannelAlarms':
        def bit(n):
            return bool(word & (1 << n))

        return cls(
            word=word,
            clip=bit(ALARM_BIT_CLIP),
            thermal_soa=bit(ALARM_BIT_THERMAL_SOA),
            over_temp=bit(ALARM_BIT_OVER_TEMP),
            rail_fault=bit(ALARM_BIT_RAIL_FAULT),
            aux_current_fault=bit(ALARM_BIT_AUX_CURRENT_FAULT),
            other_fault=bit(ALARM_BIT_OTHER_FAULT),
            low_load=bit(ALARM_BIT_LOW_LOAD),
        )


@dataclass(frozen=True)
class AlarmReply:
    """Decoded READALLALARMS2 answer."""

    ok: bool
    fault: bool = False
    gpio: Optional[int] = None
    global_word: Optional[int] = None
    channels: Tuple[ChannelAlarms, ...] = ()


def parse_standby(data: bytes) -> StandbyReply:
    """
    Decode a standby read answer.

    Expected payload (4 bytes): [answer_ok, on_off, 0, 0]
    """
    if len(data) < 2:
        return StandbyReply(ok=False)
    return StandbyReply(ok=data[0] == ANSWER_OK, raw_state=data[1])


def parse_gain_mute(data: bytes, max_channels: int) -> GainMuteReply:
    """
    Decode a READGM answer.

    Payload: answer_ok (u8), channel count (u8), then per channel
    input gain (int16, 1/100 dB), output gain (int16, 1/100 dB),
    input mute (u8), output mute (u8).

    Decoding stops at the first channel record that does not fit the
    buffer, so a short answer yields fewer channels.

    Args:
        data: Response payload
        max_channels: Upper bound on channels to decode

    Returns:
        GainMuteReply
    """
    if len(data) < 2:
        return GainMuteReply(ok=False)

    reported = data[1]
    channels = []
    offset = 2
    for _ in range(min(reported, max_channels)):
        if offset + GM_CHANNEL_SIZE > len(data):
            break
        in_gain, out_gain, in_mute, out_mute = struct.unpack_from(GM_CHANNEL_FORMAT, data, offset)
        offset += GM_CHANNEL_SIZE
        channels.append(ChannelGainMute(
            input_gain=in_gain / 100,
            output_gain=out_gain / 100,
            input_mute=in_mute == 1,
            output_mute=out_mute == 1,
        ))

    return GainMuteReply(
        ok=data[0] == ANSWER_OK,
        reported_channels=reported,
        channels=tuple(channels),
    )


def parse_alarms(data: bytes, max_channels: int = MAX_ALARM_CHANNELS) -> AlarmReply:
    """
    Decode a READALLALARMS2 answer.

    Payload: answer_ok (u8), gpio alarms (u8), reserved (u16),
    global alarm word (u32), then up to 8 per-channel alarm words (u32).

    Args:
        data: Response payload
        max_channels: Upper bound on per-channel words to decode

    Returns:
        AlarmReply
    """
    if len(data) < 1 or data[0] != ANSWER_OK:
        return AlarmReply(ok=False)

    if len(data) < ALARM_HEADER_SIZE + ALARM_WORD_SIZE:
        return AlarmReply(ok=False)

    gpio = data[1]
    offset = ALARM_HEADER_SIZE
    (global_word,) = struct.unpack_from('<I', data, offset)
    offset += ALARM_WORD_SIZE

    words = []
    while len(words) < MAX_ALARM_CHANNELS and offset + ALARM_WORD_SIZE <= len(data):
        (word,) = struct.unpack_from('<I', data, offset)
        offset += ALARM_WORD_SIZE
        words.append(word)

    # Fault covers every word the device sent, not only the configured channels.
    fault = global_word != 0 or any(words)

    return AlarmReply(
        ok=True,
        fault=fault,
        gpio=gpio,
        global_word=global_word,
        channels=tuple(ChannelAlarms.from_word(w) for w in words[:max(max_channels, 0)]),
    )
