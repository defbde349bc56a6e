"""
Status polling service for one or more amplifiers.

Every poll interval the service reads each configured device over the UDP
feedback channel, logs the result and optionally writes it to InfluxDB.
"""

import logging
import signal
import sys
import threading
import time
from typing import Dict, Optional

from .config import load_configuration, MonitorConfig
from .exceptions import AmpMonitorError
from .status import DeviceStatus, read_status
from .variables import render_variables, sanitize_device_id

try:
    from influxdb_client_3 import InfluxDBClient3, Point
    INFLUXDB_AVAILABLE = True
except ImportError:
    INFLUXDB_AVAILABLE = False


class StatusPoller:
    """
    Periodic status poller.

    Polls every configured host sequentially, one fresh UDP exchange set
    per host and cycle.
    """

    def __init__(self, config: MonitorConfig):
        """
        Initialize the status poller.

        Args:
            config: Monitor configuration
        """
        self.config = config
        self.logger = logging.getLogger(__name__)

        # State
        self.running = False
        self.consecutive_errors = 0
        self.last_status: Dict[str, DeviceStatus] = {}
        self._stop_event = threading.Event()

        # Telemetry
        self.influx_client: Optional["InfluxDBClient3"] = None

    def _init_influxdb(self):
        """Initialize InfluxDB client if telemetry is enabled."""
        if not self.config.telemetry_enabled:
            self.logger.info("Telemetry disabled")
            return

        if not INFLUXDB_AVAILABLE:
            self.logger.warning("Telemetry enabled but influxdb3-python package not installed. "
                                "Install with: pip install influxdb3-python")
            return

        try:
            self.influx_client = InfluxDBClient3(
                host=self.config.influxdb_host,
                database=self.config.influxdb_database,
                token=self.config.influxdb_token
            )
            self.logger.info(f"InfluxDB telemetry enabled: {self.config.influxdb_host}/{self.config.influxdb_database}")
        except Exception as e:
            self.logger.error(f"Failed to initialize InfluxDB client: {e}")
            self.influx_client = None

    def _write_telemetry(self, host: str, status: DeviceStatus):
        """Write one snapshot as InfluxDB points: a device point plus one per channel, skipping points with no fields."""
        if not self.influx_client:
            return

        timestamp_ns = time.time_ns()
        points = []

        device_point = Point("amp_status").tag("host", host).time(timestamp_ns)
        device_fields = False
        if status.power is not None:
            device_point = device_point.field("power", int(status.power))
            device_fields = True
        if status.fault is not None:
            device_point = device_point.field("fault", int(status.fault))
            device_fields = True
        if device_fields:
            points.append(device_point)

        for index, channel in enumerate(status.channels, start=1):
            point = Point("amp_channel").tag("host", host).tag("channel", str(index)).time(timestamp_ns)
            has_fields = False
            for name, value in vars(channel).items():
                if value is None:
                    continue
                point = point.field(name, float(value) if name == 'gain' else int(value))
                has_fields = True
            if has_fields:
                points.append(point)

        if not points:
            return

        try:
            self.influx_client.write(record=points)
            self.logger.debug(f"Wrote {len(points)} points to InfluxDB for {host}")
        except Exception as e:
            self.logger.warning(f"Failed to write to InfluxDB: {e}")

    def poll_once(self) -> Dict[str, DeviceStatus]:
        """
        Read every configured device once.

        Returns:
            Mapping of host to its status snapshot
        """
        results = {}
        for host in self.config.hosts:
            options = self.config.exchange_options(host)
            status = read_status(options, self.config.max_channels)
            results[host] = status

            if self.logger.isEnabledFor(logging.DEBUG):
                variables = render_variables(sanitize_device_id(host), status, self.config.max_channels)
                self.logger.debug(f"{host}: {variables}")

            self._write_telemetry(host, status)

        self.last_status = results
        return results

    def _summarize(self, results: Dict[str, DeviceStatus]) -> str:
        parts = []
        for host, status in results.items():
            power = 'unknown' if status.power is None else ('on' if status.power else 'standby')
            fault = 'unknown' if status.fault is None else ('FAULT' if status.fault else 'ok')
            parts.append(f"{host} power={power} alarms={fault}")
        return "; ".join(parts)

    def _poll_loop(self):
        """
        Main polling loop.

        Polls all devices, then waits for the poll interval or a stop request.
        """
        self.logger.info("Entering main poll loop")

        while self.running:
            try:
                results = self.poll_once()
                self.logger.info(self._summarize(results))
                self.consecutive_errors = 0

            except Exception as e:
                self.consecutive_errors += 1
                self.logger.error(f"Error in poll loop: {e}", exc_info=True)

                if self.consecutive_errors >= self.config.max_consecutive_errors:
                    self.logger.error(
                        f"Too many consecutive errors ({self.consecutive_errors}), stopping service"
                    )
                    self.running = False
                    break

            if self._stop_event.wait(self.config.poll_interval):
                break

        self.logger.info("Exited main poll loop")

    def start(self):
        """
        Start the poller.

        This method blocks until the service is stopped.
        """
        self.logger.info("Starting amplifier status poller")
        self.logger.info(f"Configuration: {self.config}")

        self.running = True
        self._stop_event.clear()

        self._init_influxdb()

        try:
            self._poll_loop()
        finally:
            self.stop()

    def stop(self):
        """Stop the poller and release resources."""
        self.logger.info("Stopping status poller")
        self.running = False
        self._stop_event.set()

        if self.influx_client:
            try:
                self.influx_client.close()
                self.logger.info("InfluxDB client closed")
            except Exception as e:
                self.logger.warning(f"Error closing InfluxDB client: {e}")
            self.influx_client = None

        self.logger.info("Status poller stopped")


# Global service instance for signal handling
_service_instance: Optional[StatusPoller] = None


def signal_handler(signum, frame):
    """Handle termination signals for graceful shutdown."""
    logger = logging.getLogger(__name__)
    logger.info(f"Received signal {signum}, initiating shutdown")

    if _service_instance:
        _service_instance.stop()


def setup_logging(log_level: str, log_file: Optional[str] = None,
                  log_format: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'):
    """
    Setup logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        log_format: Record format string
    """
    level = getattr(logging, log_level.upper())

    formatter = logging.Formatter(log_format)

    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove any existing handlers
    logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


def main(argv=None):
    """Main entry point for the status poller."""
    argv = sys.argv[1:] if argv is None else argv

    try:
        config = load_configuration(*argv[:1])

        setup_logging(config.log_level, config.log_file, config.log_format)

        logger = logging.getLogger(__name__)
        logger.info("Amplifier UDP status monitor")

        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)

        global _service_instance
        _service_instance = StatusPoller(config)
        _service_instance.start()

        return 0

    except KeyboardInterrupt:
        logging.info("Keyboard interrupt received")
        return 0

    except AmpMonitorError as e:
        logging.error(f"Fatal error: {e}")
        return 1

    except Exception as e:
        logging.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
