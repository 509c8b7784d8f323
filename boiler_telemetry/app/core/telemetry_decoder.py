"""
Decoding of raw holding-register frames into boiler readings.

A frame is the byte string returned by RegisterReader: big-endian 16-bit
words, one group of ``words_per_unit`` words per boiler. Decoding is pure;
it neither touches the transport nor keeps state between calls.
"""

import struct
from typing import List, Optional, Sequence

from boiler_telemetry.app.core.telemetry_exceptions import InsufficientDataError, LengthMismatchError
from boiler_telemetry.app.models.register_map import (
    DEFAULT_REGISTER_MAP, DURATION_FIELDS, RESERVED_FIELD, SIGNED_FIELDS, RegisterMapConfig
)
from boiler_telemetry.app.models.telemetry import BoilerReading
from boiler_telemetry.app.utilities.telemetry import logger


def format_duration(seconds: int) -> str:
    """Render an unsigned 16-bit seconds counter as HH:MM:SS (wraps after 18:12:15)"""
    seconds &= 0xFFFF
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    return f"{hours:02d}:{minutes:02d}:{seconds % 60:02d}"


def _to_signed(word: int) -> int:
    return word - 0x10000 if word & 0x8000 else word


def frame_to_words(frame: bytes) -> List[int]:
    if len(frame) % 2:
        raise LengthMismatchError(
            f"Frame of {len(frame)} bytes is not a whole number of registers",
            actual=len(frame)
        )
    return list(struct.unpack(f">{len(frame) // 2}H", frame))


def decode_unit(unit_id: int, words: Sequence[int], fields: Sequence[str]) -> BoilerReading:
    values = {}
    for name, word in zip(fields, words):
        if name == RESERVED_FIELD:
            continue
        if name in DURATION_FIELDS:
            values[name] = format_duration(word)
        elif name in SIGNED_FIELDS:
            values[name] = _to_signed(word)
        else:
            values[name] = word
    return BoilerReading(id=unit_id, **values)


def decode(frame: bytes, register_map: Optional[RegisterMapConfig] = None) -> List[BoilerReading]:
    """
    Decode a register frame into one BoilerReading per complete unit group.

    Units are independent: a group cut short by the end of the frame is
    left out and the preceding units are still returned. A frame that does
    not hold even one full group raises InsufficientDataError.
    """
    register_map = register_map or DEFAULT_REGISTER_MAP
    words = frame_to_words(frame)
    words_per_unit = register_map.words_per_unit

    if len(words) < words_per_unit:
        raise InsufficientDataError(
            f"Frame holds {len(words)} registers, one boiler needs {words_per_unit}",
            count=len(words)
        )

    readings = []
    for index in range(register_map.unit_count):
        offset = index * words_per_unit
        group = words[offset:offset + words_per_unit]
        if len(group) < words_per_unit:
            logger.warning("Incomplete register group, boiler omitted", extra={
                "component": "telemetry_decoder",
                "boiler_id": index + 1,
                "available_words": len(group),
                "words_per_unit": words_per_unit
            })
            continue
        readings.append(decode_unit(index + 1, group, register_map.fields))

    return readings
