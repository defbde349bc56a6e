"""
Amplifier Monitor - UDP status feedback for networked power amplifiers

This package reads amplifier status over the device's secondary binary UDP
protocol instead of the HTTP API:
- Standby read (0x0E) -> power state
- READGM (0x01) -> per-channel gain and mute
- READALLALARMS2 (0x19) -> global and per-channel alarm bits

Each poll is a set of independent single-shot exchanges; results are merged
into one DeviceStatus snapshot.
"""

__version__ = "1.0.0"

from .config import ExchangeOptions, MonitorConfig, load_configuration
from .exceptions import (
    AmpMonitorError,
    ConfigurationError,
    TransportError,
    MalformedFrameError,
    ResponseTimeoutError
)
from .protocol import Command, Frame, build_frame, crc16, parse_frame
from .decoders import (
    AlarmReply,
    ChannelAlarms,
    ChannelGainMute,
    GainMuteReply,
    StandbyReply,
    parse_alarms,
    parse_gain_mute,
    parse_standby,
)
from .transport import UDPExchange, exchange
from .status import ChannelStatus, DeviceStatus, read_status
from .variables import render_variables, sanitize_device_id
from .poller import StatusPoller

__all__ = [
    '__version__',
    'ExchangeOptions',
    'MonitorConfig',
    'load_configuration',
    'AmpMonitorError',
    'ConfigurationError',
    'TransportError',
    'MalformedFrameError',
    'ResponseTimeoutError',
    'Command',
    'Frame',
    'build_frame',
    'crc16',
    'parse_frame',
    'AlarmReply',
    'ChannelAlarms',
    'ChannelGainMute',
    'GainMuteReply',
    'StandbyReply',
    'parse_alarms',
    'parse_gain_mute',
    'parse_standby',
    'UDPExchange',
    'exchange',
    'ChannelStatus',
    'DeviceStatus',
    'read_status',
    'render_variables',
    'sanitize_device_id',
    'StatusPoller',
]
