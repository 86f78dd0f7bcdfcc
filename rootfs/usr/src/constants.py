"""
APCUPSD Exporter Constants

Wire protocol framing and shared enums for type safety across the application.
"""

from enum import StrEnum

# Request frame: 2-byte big-endian length (6) followed by the command
CMD_STATUS = b"\x00\x06status"

# End of a status response
TERMINATOR = "  \n\x00\x00"

# Separator between key and value of a record
SEP = ":"

BUFFER_SIZE = 1024

# A full status report is a few KiB; reading stops beyond this
MAX_RESPONSE_SIZE = 64 * 1024

DEFAULT_NIS_PORT = 3551

# Unit suffixes apcupsd appends to values. Checked in order and the first match
# wins, so an entry must come before any shorter entry that is a suffix of the
# same record ("Percent Load Capacity" before "Percent").
UNITS: tuple[str, ...] = (
    "Percent Load Capacity",
    "Minutes",
    "Seconds",
    "Percent",
    "Volts",
    "Watts",
    "Amps",
    "Hz",
    "VA",
    "C",
)


class InfoLabel(StrEnum):
    """Descriptive status keys exported as labels of the info metric."""

    APC = "APC"
    HOSTNAME = "HOSTNAME"
    UPSNAME = "UPSNAME"
    VERSION = "VERSION"
    CABLE = "CABLE"
    MODEL = "MODEL"
    UPSMODE = "UPSMODE"
    DRIVER = "DRIVER"
    APCMODEL = "APCMODEL"


class ErrorCategory(StrEnum):
    """Sources of errors recorded on the application context."""

    NIS = "nis"
    HTTP = "http"
