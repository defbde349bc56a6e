"""
Device status snapshot built from the three read exchanges.

The standby read, the READGM table and the READALLALARMS2 bitfields are
requested one after another. A failed exchange only leaves its own fields
unset (None); the snapshot is always returned.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .config import ExchangeOptions
from .decoders import parse_alarms, parse_gain_mute, parse_standby
from .exceptions import AmpMonitorError
from .protocol import Command
from .transport import UDPExchange

logger = logging.getLogger(__name__)

STANDBY_READ_PAYLOAD = bytes(4)


@dataclass(frozen=True)
class ChannelStatus:
    """State of one amplifier channel. None means not reported."""

    mute: Optional[bool] = None
    gain: Optional[float] = None
    clip: Optional[bool] = None
    over_temp: Optional[bool] = None
    low_load: Optional[bool] = None
    rail_fault: Optional[bool] = None
    other_fault: Optional[bool] = None
    thermal_soa: Optional[bool] = None
    aux_current_fault: Optional[bool] = None


@dataclass(frozen=True)
class DeviceStatus:
    """Snapshot of one poll of a device."""

    power: Optional[bool] = None
    fault: Optional[bool] = None
    channels: Tuple[ChannelStatus, ...] = ()


def _read_power(client: UDPExchange) -> Optional[bool]:
    data = client.request(Command.STANDBY, STANDBY_READ_PAYLOAD, force_zero_crc=True)
    return parse_standby(data).power


def _read_gain_mute(client: UDPExchange, channel_count: int, channels: List[Dict[str, Any]]):
    reply = parse_gain_mute(client.request(Command.READGM), channel_count)
    if not reply.ok:
        return
    for i, ch in enumerate(reply.channels[:channel_count]):
        channels[i]['mute'] = ch.mute
        channels[i]['gain'] = ch.gain


def _read_alarms(client: UDPExchange, channel_count: int, channels: List[Dict[str, Any]]) -> Optional[bool]:
    reply = parse_alarms(client.request(Command.READALLALARMS2), channel_count)
    if not reply.ok:
        return None
    for i, alarms in enumerate(reply.channels[:channel_count]):
        channels[i].update(
            clip=alarms.clip,
            thermal_soa=alarms.thermal_soa,
            over_temp=alarms.over_temp,
            rail_fault=alarms.rail_fault,
            aux_current_fault=alarms.aux_current_fault,
            other_fault=alarms.other_fault,
            low_load=alarms.low_load,
        )
    return reply.fault


def read_status(options: ExchangeOptions, channel_count: int) -> DeviceStatus:
    """
    Read the current device status over the UDP feedback channel.

    Never raises for device or network problems: every exchange that
    fails leaves its fields as None.

    Args:
        options: Connection parameters of the device
        channel_count: Number of channels to report

    Returns:
        DeviceStatus with exactly channel_count channel entries
    """
    client = UDPExchange(options)
    channels: List[Dict[str, Any]] = [{} for _ in range(channel_count)]
    power = None
    fault = None

    try:
        power = _read_power(client)
    except AmpMonitorError as e:
        logger.debug(f"Standby read from {options.host} skipped: {e}")

    try:
        _read_gain_mute(client, channel_count, channels)
    except AmpMonitorError as e:
        logger.debug(f"Gain/mute read from {options.host} skipped: {e}")

    try:
        fault = _read_alarms(client, channel_count, channels)
    except AmpMonitorError as e:
        logger.debug(f"Alarm read from {options.host} skipped: {e}")

    return DeviceStatus(
        power=power,
        fault=fault,
        channels=tuple(ChannelStatus(**ch) for ch in channels),
    )
