"""
Custom exceptions for the amplifier UDP feedback client.
"""


class AmpMonitorError(Exception):
    """Base exception for all amplifier monitor errors."""
    pass


class ConfigurationError(AmpMonitorError):
    """Raised when configuration is invalid or incomplete."""
    pass


class TransportError(AmpMonitorError):
    """Raised when binding, sending or receiving on the UDP socket fails."""
    pass


class MalformedFrameError(AmpMonitorError):
    """Raised when received bytes are not a structurally valid frame."""
    pass


class ResponseTimeoutError(AmpMonitorError):
    """Raised when no matching reply arrives before the exchange deadline."""
    pass
