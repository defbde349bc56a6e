"""
Frame codec for the amplifier's binary UDP feedback protocol.

Frame layout (all multi-byte fields little-endian)::

    Byte 0:        0x02 (STX)
    Byte 1:        command code
    Bytes 2-3:     cookie (uint16)
    Bytes 4-5:     payload length (uint16)
    Bytes 6-7:     answer port (uint16)
    Bytes 8..8+N:  payload
    Next 2 bytes:  CRC-16 over bytes 0..8+N-1
    Next byte:     bitwise complement of the command code
    Last byte:     0x03 (ETX)

Replies carry the complemented command code in byte 1.
"""

import struct
from dataclasses import dataclass
from enum import IntEnum

from .exceptions import MalformedFrameError

STX = 0x02
ETX = 0x03

HEADER_FORMAT = '<BBHHH'
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
TRAILER_FORMAT = '<HBB'
TRAILER_SIZE = struct.calcsize(TRAILER_FORMAT)
MIN_FRAME_SIZE = HEADER_SIZE + TRAILER_SIZE

MAX_PAYLOAD_SIZE = 0xFFFF

CRC_POLYNOMIAL = 0xA001
CRC_INITIAL = 0xFFFF


class Command(IntEnum):
    """Read-only command codes of the feedback protocol."""
    READGM = 0x01
    STANDBY = 0x0E
    READALLALARMS2 = 0x19


# The standby read is rejected by the firmware unless its CRC field is zero.
ZERO_CRC_COMMANDS = frozenset({Command.STANDBY})


@dataclass(frozen=True)
class Frame:
    """A decoded protocol frame."""

    command: int
    cookie: int
    answer_port: int
    payload: bytes
    crc: int = 0
    not_command: int = 0
    etx: int = ETX

    @property
    def reply_to(self) -> int:
        """Command code a reply frame answers (reply command bytes are inverted)."""
        return invert_command(self.command)

    def __repr__(self) -> str:
        return (
            f"Frame(command=0x{self.command:02X}, cookie=0x{self.cookie:04X}, "
            f"answer_port={self.answer_port}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


def invert_command(command: int) -> int:
    return ~command & 0xFF


def crc16(data: bytes) -> int:
    """
    CRC-16/IBM (reflected polynomial 0xA001, initial value 0xFFFF).

    Args:
        data: Bytes to checksum

    Returns:
        16-bit CRC
    """
    crc = CRC_INITIAL
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ CRC_POLYNOMIAL
            else:
                crc >>= 1
    return crc & 0xFFFF


def build_frame(command: int, cookie: int, answer_port: int, payload: bytes = b"",
                force_zero_crc: bool = False) -> bytes:
    """
    Build a request frame.

    Args:
        command: Command code
        cookie: Correlation value echoed back by the device
        answer_port: UDP port the device should reply to (0 = device default)
        payload: Command-specific payload bytes
        force_zero_crc: Write 0 into the CRC field instead of the computed value

    Returns:
        Complete frame bytes
    """
    if len(payload) > MAX_PAYLOAD_SIZE:
        raise ValueError(f"Payload too large: {len(payload)} bytes")

    body = struct.pack(
        HEADER_FORMAT,
        STX,
        command & 0xFF,
        cookie & 0xFFFF,
        len(payload),
        answer_port & 0xFFFF,
    ) + bytes(payload)

    crc = 0 if force_zero_crc else crc16(body)

    return body + struct.pack(TRAILER_FORMAT, crc, invert_command(command), ETX)


def parse_frame(data: bytes) -> Frame:
    """
    Parse a received frame.

    The CRC and ETX bytes are returned as found; checking them is left to
    the caller.

    Args:
        data: Raw datagram

    Returns:
        Decoded Frame

    Raises:
        MalformedFrameError: If the datagram is too short, does not start
            with STX, or declares more payload than it carries
    """
    if len(data) < MIN_FRAME_SIZE:
        raise MalformedFrameError(f"Frame too short: {len(data)} bytes, minimum {MIN_FRAME_SIZE}")

    stx, command, cookie, count, answer_port = struct.unpack_from(HEADER_FORMAT, data, 0)
    if stx != STX:
        raise MalformedFrameError(f"Bad start byte: 0x{stx:02x}")

    payload_end = HEADER_SIZE + count
    if len(data) < payload_end + TRAILER_SIZE:
        raise MalformedFrameError(
            f"Truncated frame: payload length {count} needs {payload_end + TRAILER_SIZE} bytes, got {len(data)}"
        )

    crc, not_command, etx = struct.unpack_from(TRAILER_FORMAT, data, payload_end)

    return Frame(
        command=command,
        cookie=cookie,
        answer_port=answer_port,
        payload=bytes(data[HEADER_SIZE:payload_end]),
        crc=crc,
        not_command=not_command,
        etx=etx,
    )
