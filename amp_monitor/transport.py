"""
Single-shot UDP request/response exchange with the amplifier.

Each exchange binds its own ephemeral socket, sends one frame and waits for
the reply whose inverted command and cookie match the request. The socket is
closed on every exit path; there is no retry and no persistent session.
"""

import logging
import random
import socket
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from .config import ExchangeOptions
from .exceptions import MalformedFrameError, ResponseTimeoutError, TransportError
from .protocol import ZERO_CRC_COMMANDS, build_frame, parse_frame

RECV_BUFFER_SIZE = 2048


class UDPExchange:
    """
    Request/response client for the amplifier's UDP feedback port.

    The device answers to the port named in the request frame, so the
    bound local port is written into the answer-port field unless
    ``answer_port_zero`` is set.
    """

    def __init__(self, options: ExchangeOptions):
        """
        Initialize the exchange client.

        Args:
            options: Device host, port, timeout and answer-port policy
        """
        self.options = options
        self.logger = logging.getLogger(__name__)

    @contextmanager
    def _endpoint(self) -> Iterator[socket.socket]:
        """Bind an ephemeral UDP socket and close it when the exchange ends."""
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as e:
            raise TransportError(f"Failed to create UDP socket: {e}") from e

        try:
            try:
                sock.bind(("0.0.0.0", 0))
            except OSError as e:
                raise TransportError(f"Failed to bind UDP socket: {e}") from e
            yield sock
        finally:
            sock.close()

    @staticmethod
    def _new_cookie() -> int:
        return random.randint(0, 0xFFFF)

    def request(self, command: int, payload: bytes = b"", force_zero_crc: bool = False,
                timeout: Optional[float] = None) -> bytes:
        """
        Send one command and return the payload of the matching reply.

        Args:
            command: Command code
            payload: Request payload
            force_zero_crc: Send a zero CRC field (always applied to the standby read)
            timeout: Override for the configured per-exchange timeout, in seconds

        Returns:
            Reply payload bytes

        Raises:
            ResponseTimeoutError: If no matching reply arrives in time
            TransportError: If the socket cannot be bound or the send fails
        """
        timeout = self.options.timeout if timeout is None else timeout
        force_zero_crc = force_zero_crc or command in ZERO_CRC_COMMANDS
        destination = (self.options.host, self.options.device_port)

        with self._endpoint() as sock:
            cookie = self._new_cookie()
            answer_port = 0 if self.options.answer_port_zero else sock.getsockname()[1]
            frame = build_frame(command, cookie, answer_port, payload, force_zero_crc)

            try:
                sock.sendto(frame, destination)
            except OSError as e:
                raise TransportError(f"Failed to send to {destination[0]}:{destination[1]}: {e}") from e

            self.logger.debug(
                f"Sent cmd=0x{command:02x} cookie=0x{cookie:04x} answer_port={answer_port} "
                f"to {destination[0]}:{destination[1]}: {frame.hex(' ')}"
            )

            deadline = time.monotonic() + timeout
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                sock.settimeout(remaining)

                try:
                    data, addr = sock.recvfrom(RECV_BUFFER_SIZE)
                except socket.timeout:
                    break
                except ConnectionRefusedError:
                    # ICMP port unreachable from an earlier datagram; keep waiting.
                    continue
                except OSError as e:
                    raise TransportError(f"Failed to receive from {destination[0]}: {e}") from e

                reply = self._match_reply(data, addr, command, cookie)
                if reply is not None:
                    return reply

        raise ResponseTimeoutError(
            f"No reply to cmd=0x{command:02x} from {destination[0]}:{destination[1]} within {timeout:.3f}s"
        )

    def _match_reply(self, data: bytes, addr, command: int, cookie: int) -> Optional[bytes]:
        """Return the reply payload if the datagram answers this request, else None."""
        try:
            reply = parse_frame(data)
        except MalformedFrameError as e:
            self.logger.debug(f"Discarding malformed datagram from {addr[0]}:{addr[1]}: {e}")
            return None

        if reply.reply_to != command:
            self.logger.debug(
                f"Discarding reply for cmd=0x{reply.reply_to:02x}, expected 0x{command:02x}"
            )
            return None

        if reply.cookie != cookie:
            self.logger.debug(
                f"Discarding stale reply: cookie=0x{reply.cookie:04x}, expected 0x{cookie:04x}"
            )
            return None

        self.logger.debug(f"Reply to cmd=0x{command:02x} from {addr[0]}:{addr[1]}: {reply}")
        return reply.payload


def exchange(options: ExchangeOptions, command: int, payload: bytes = b"",
             force_zero_crc: bool = False) -> bytes:
    """Perform a single request/response exchange with the device."""
    return UDPExchange(options).request(command, payload, force_zero_crc)
