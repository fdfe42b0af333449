"""
Capture files: beacon events as CSV

Columns:
    sequence     - beacon sequence number (u32)
    beacon_us    - beacon clock (microseconds)
    receiver_ns  - receiver monotonic arrival time (nanoseconds)

One row per event, arrival order. Used to replay recorded or simulated
sessions offline.
"""

import logging
from pathlib import Path
from typing import List, Sequence, Union

import pandas as pd

from .packet_codec import Event

logger = logging.getLogger(__name__)

CAPTURE_COLUMNS = ['sequence', 'beacon_us', 'receiver_ns']


class CaptureFormatError(ValueError):
    """Capture file is missing columns or holds non-integer values"""


def events_to_frame(events: Sequence[Event]) -> pd.DataFrame:
    return pd.DataFrame(
        [[e.sequence, e.beacon_micros, e.receiver_nanos] for e in events],
        columns=CAPTURE_COLUMNS,
    )


def write_capture(events: Sequence[Event], path: Union[str, Path]) -> Path:
    """Write events to a CSV capture file, returns the path written"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    events_to_frame(events).to_csv(path, index=False)
    logger.info(f"Wrote {len(events)} events to {path}")
    return path


def read_capture(path: Union[str, Path]) -> List[Event]:
    """
    Read a CSV capture file.

    Raises:
        FileNotFoundError: path does not exist
        CaptureFormatError: required columns missing or values not integers
    """
    df = pd.read_csv(path)

    missing = [c for c in CAPTURE_COLUMNS if c not in df.columns]
    if missing:
        raise CaptureFormatError(f"{path}: missing columns {missing}")

    df = df[CAPTURE_COLUMNS]
    if df.empty:
        logger.info(f"{path}: capture holds no events")
        return []
    if df.isnull().values.any():
        raise CaptureFormatError(f"{path}: empty cells in capture")
    for column in CAPTURE_COLUMNS:
        if not pd.api.types.is_integer_dtype(df[column]):
            raise CaptureFormatError(f"{path}: column {column!r} is not integer")

    events = [
        Event(sequence=int(seq), beacon_micros=int(t_us), receiver_nanos=int(rx_ns))
        for seq, t_us, rx_ns in df.itertuples(index=False, name=None)
    ]
    logger.info(f"Read {len(events)} events from {path}")
    return events
