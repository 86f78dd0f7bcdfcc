"""
APCUPSD NIS Client

Requests the status report from an apcupsd Network Information Server over TCP
and turns it into a key/value snapshot.
"""

import logging
import socket

from constants import BUFFER_SIZE, CMD_STATUS, MAX_RESPONSE_SIZE, TERMINATOR
from protocol import parse

logger = logging.getLogger(__name__)

_TERMINATOR_BYTES = TERMINATOR.encode("ascii")


class NisIOError(Exception):
    """Connecting to, writing to or reading from the NIS failed."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"IO Error: {cause}")
        self.cause = cause


def request(host: str, port: int, timeout: float) -> str:
    """
    Connect to the NIS and request its status.

    The timeout bounds the connection attempt and every read and write. Reading
    stops when the peer closes the connection or the response ends with the
    terminator. A response cut short by the peer, or one exceeding
    MAX_RESPONSE_SIZE, is returned as-is. Hostnames that cannot be encoded
    fail like any other connection error.

    Args:
        host: Hostname or IP address of the apcupsd server.
        port: Port of the NIS (usually 3551).
        timeout: Timeout in seconds.

    Returns:
        str: The raw response, decoded with invalid bytes replaced.

    Raises:
        NisIOError: If connecting, sending or receiving fails.
    """
    buffer = bytearray()
    try:
        with socket.create_connection((host, port), timeout=timeout) as sock:
            sock.settimeout(timeout)
            sock.sendall(CMD_STATUS)

            while True:
                data = sock.recv(BUFFER_SIZE)
                if not data:
                    break
                buffer.extend(data)
                if buffer.endswith(_TERMINATOR_BYTES):
                    break
                if len(buffer) >= MAX_RESPONSE_SIZE:
                    logger.warning(f"Response from {host}:{port} exceeds {MAX_RESPONSE_SIZE} bytes, truncating")
                    break
    except (OSError, UnicodeError) as e:
        raise NisIOError(e) from e

    logger.debug(f"Received {len(buffer)} bytes from {host}:{port}")
    return buffer.decode("utf-8", errors="replace")


def fetch(host: str, port: int, timeout: float, strip_units: bool) -> dict[str, str]:
    """
    Fetch and parse the status of the apcupsd server.

    Args:
        host: Hostname or IP address of the apcupsd server.
        port: Port of the NIS.
        timeout: Timeout in seconds.
        strip_units: Remove unit suffixes from the values.

    Returns:
        dict[str, str]: The complete status, sorted by key.

    Raises:
        NisIOError: If the request fails. No partial result is returned.
    """
    raw_status = request(host, port, timeout)
    return parse(raw_status, strip_units)
