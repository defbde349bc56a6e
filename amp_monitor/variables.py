"""
Rendering of a device status snapshot into named display strings.
"""

import re
from typing import Dict, Optional

from .status import ChannelStatus, DeviceStatus

_UNSAFE_ID_CHARS = re.compile(r'[^A-Za-z0-9]')

ALARM_VARIABLES = (
    ('overtemp', 'over_temp'),
    ('lowload', 'low_load'),
    ('rail_fault', 'rail_fault'),
    ('other_fault', 'other_fault'),
    ('thermal_soa', 'thermal_soa'),
    ('aux_current_fault', 'aux_current_fault'),
)


def sanitize_device_id(host: str) -> str:
    """Turn a host name or address into a variable-name suffix."""
    return _UNSAFE_ID_CHARS.sub('_', host)


def _yes_no(value: Optional[bool]) -> str:
    return 'Yes' if value else 'No'


def _format_gain(gain: Optional[float]) -> str:
    return f"{gain:.1f}" if gain is not None else '0'


def render_variables(device_id: str, status: DeviceStatus, max_channels: int) -> Dict[str, str]:
    """
    Format a snapshot as variable name -> display value.

    Unknown values render the same as their negative state.

    Args:
        device_id: Sanitized device identifier appended to every name
        status: Snapshot to render
        max_channels: Number of channel variable groups to emit

    Returns:
        Dict of variable names to display strings
    """
    variables = {
        f"power_{device_id}": 'On' if status.power else 'Off',
        f"fault_{device_id}": _yes_no(status.fault),
    }

    for i in range(max_channels):
        ch = i + 1
        channel = status.channels[i] if i < len(status.channels) else ChannelStatus()

        variables[f"ch{ch}_mute_{device_id}"] = 'Muted' if channel.mute else 'Unmuted'
        variables[f"ch{ch}_gain_{device_id}"] = _format_gain(channel.gain)
        variables[f"ch{ch}_clip_{device_id}"] = 'Clipping' if channel.clip else 'OK'
        for name, attr in ALARM_VARIABLES:
            variables[f"ch{ch}_{name}_{device_id}"] = _yes_no(getattr(channel, attr))

    return variables
