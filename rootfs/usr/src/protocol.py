"""
APCUPSD NIS Protocol Parser

This module handles parsing of the status report returned by the apcupsd
Network Information Server.

Protocol Format:
- Request: 0x00 0x06 "status"
- Response: records of the form <length byte><text>\\n, separated by null bytes
- Terminator: "  \\n\\x00\\x00"

Record text:
- KEY      : VALUE [UNIT]
  e.g. "LINEV    : 120.0 Volts"
"""

from collections.abc import Iterable, Sequence

from constants import SEP, TERMINATOR, UNITS


def split(raw_status: str) -> list[str]:
    """
    Split a raw status response into records.

    The terminator is dropped from the end by length, the remainder is split on
    null bytes and the length byte and trailing newline are cut off each
    fragment. The length byte is not checked against the fragment length.

    Args:
        raw_status: The decoded response (e.g. "\\x00\\x1aAPC      : 001,036,0876\\n...")

    Returns:
        list[str]: The records in wire order, e.g. ["APC      : 001,036,0876", ...]
    """
    if len(raw_status) < len(TERMINATOR):
        return []

    trimmed = raw_status[: len(raw_status) - len(TERMINATOR)]

    records = []
    for fragment in trimmed.split("\x00"):
        if len(fragment) <= 2:
            continue
        records.append(fragment[1:-1])

    return [record for record in records if record]


def strip_units(records: Iterable[str], units: Sequence[str] = UNITS) -> list[str]:
    """
    Remove a trailing unit from each record.

    Units are tried in order; the first one found at the end of the record and
    preceded by a space is removed together with that space. At most one unit
    is removed per record.

    Args:
        records: Records as returned by split().
        units: Ordered unit table, highest priority first.

    Returns:
        list[str]: The records without units.
    """
    stripped = []
    for record in records:
        for unit in units:
            head = record.removesuffix(unit)
            if head != record and head.endswith(" "):
                record = head[:-1]
                break
        stripped.append(record)
    return stripped


def parse(raw_status: str, strip_units_flag: bool = False) -> dict[str, str]:
    """
    Parse a raw status response into a key/value mapping.

    Records without a separator or with an empty key are dropped. Malformed or
    truncated input yields fewer (possibly zero) entries, never an error.

    Args:
        raw_status: The decoded response.
        strip_units_flag: Remove unit suffixes from values.

    Returns:
        dict[str, str]: Trimmed keys and values, sorted by key.
            Example: {"LINEV": "120.0", "STATUS": "ONLINE"}
    """
    records = split(raw_status)

    if strip_units_flag:
        records = strip_units(records)

    result = {}
    for record in records:
        key, sep, value = record.partition(SEP)
        if not sep:
            continue
        key = key.strip()
        if not key:
            continue
        result[key] = value.strip()

    return dict(sorted(result.items()))
