#!/usr/bin/env python3
"""
Beacon Packet Codec - Fixed-Layout Timestamp Frames

Decodes the 12-byte beacon notification into a typed Event.

Frame layout (little-endian):
    offset 0..3  : sequence       (u32, wraps at 2**32)
    offset 4..11 : beacon_micros  (u64, microseconds since beacon boot)

Any trailing bytes belong to the transport and are ignored here.

The receiver timestamp is NOT part of the frame. The caller stamps it from
its monotonic clock the moment the frame arrives and passes it to decode().
"""

import struct
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

FRAME_STRUCT = struct.Struct('<IQ')
FRAME_SIZE = FRAME_STRUCT.size  # 12 bytes

SEQUENCE_MODULUS = 2**32
MAX_SEQUENCE = SEQUENCE_MODULUS - 1
MAX_BEACON_MICROS = 2**64 - 1


class DecodeError(ValueError):
    """Frame could not be decoded. Recoverable: drop the frame and move on."""


class PacketTooShortError(DecodeError):
    """Frame is shorter than the fixed 12-byte layout"""

    def __init__(self, length: int):
        self.length = length
        super().__init__(f"Frame too short: {length} bytes (need {FRAME_SIZE})")


@dataclass(frozen=True)
class Event:
    """One decoded beacon frame plus its local arrival time"""
    sequence: int           # Beacon sequence number (32-bit, wraps)
    beacon_micros: int      # Beacon clock, microseconds
    receiver_nanos: int     # Receiver monotonic clock at arrival, nanoseconds

    @property
    def beacon_nanos(self) -> float:
        """Beacon timestamp in nanoseconds (regression units)"""
        return self.beacon_micros * 1000.0

    def to_dict(self) -> dict:
        return {
            'sequence': self.sequence,
            'beacon_us': self.beacon_micros,
            'receiver_ns': self.receiver_nanos,
        }


def decode(data: bytes, receiver_nanos: int) -> Event:
    """
    Decode a raw beacon frame.

    Args:
        data: Raw bytes from the transport
        receiver_nanos: Monotonic arrival time stamped by the caller

    Returns:
        Decoded Event

    Raises:
        PacketTooShortError: Frame shorter than FRAME_SIZE bytes
    """
    if len(data) < FRAME_SIZE:
        raise PacketTooShortError(len(data))

    sequence, beacon_micros = FRAME_STRUCT.unpack_from(data, 0)
    return Event(
        sequence=sequence,
        beacon_micros=beacon_micros,
        receiver_nanos=int(receiver_nanos),
    )


def encode_frame(sequence: int, beacon_micros: int) -> bytes:
    """
    Build a frame the way the beacon firmware does: [seq:u32 LE][t_us:u64 LE]

    Raises:
        ValueError: sequence or timestamp outside the unsigned field range
    """
    if not 0 <= sequence <= MAX_SEQUENCE:
        raise ValueError(f"sequence {sequence} outside u32 range")
    if not 0 <= beacon_micros <= MAX_BEACON_MICROS:
        raise ValueError(f"beacon_micros {beacon_micros} outside u64 range")
    return FRAME_STRUCT.pack(sequence, beacon_micros)
