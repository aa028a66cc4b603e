"""Google encoded polyline codec.

OpenRouteService returns route geometry in this format; OSRM can too when
``geometries=polyline`` is requested.
"""

from __future__ import annotations

from typing import Iterable, Sequence

DEFAULT_PRECISION = 5


def _encode_value(value: int) -> str:
    value = ~(value << 1) if value < 0 else value << 1
    chunks = []
    while value >= 0x20:
        chunks.append(chr((0x20 | (value & 0x1F)) + 63))
        value >>= 5
    chunks.append(chr(value + 63))
    return "".join(chunks)


def encode_polyline(points: Iterable[Sequence[float]], precision: int = DEFAULT_PRECISION) -> str:
    """Encode (lat, lon) pairs to a polyline string."""
    factor = 10 ** precision
    encoded = []
    prev_lat = 0
    prev_lon = 0
    for lat, lon in points:
        lat_i = round(lat * factor)
        lon_i = round(lon * factor)
        encoded.append(_encode_value(lat_i - prev_lat))
        encoded.append(_encode_value(lon_i - prev_lon))
        prev_lat, prev_lon = lat_i, lon_i
    return "".join(encoded)


def decode_polyline(polyline: str, precision: int = DEFAULT_PRECISION) -> list[tuple[float, float]]:
    """Decode a polyline string to a list of (lat, lon) coordinates.

    Args:
        polyline: Encoded polyline string
        precision: Number of decimal places the string was encoded with

    Returns:
        List of (latitude, longitude) tuples

    Raises:
        ValueError: If the string is truncated mid-value.
    """
    factor = 10 ** precision
    coordinates = []
    index = 0
    lat = 0
    lon = 0
    length = len(polyline)

    def _next_delta() -> int:
        nonlocal index
        shift = 0
        result = 0
        while True:
            if index >= length:
                raise ValueError("Truncated polyline string.")
            b = ord(polyline[index]) - 63
            index += 1
            result |= (b & 0x1F) << shift
            shift += 5
            if b < 0x20:
                break
        return ~(result >> 1) if (result & 1) else (result >> 1)

    while index < length:
        lat += _next_delta()
        lon += _next_delta()
        coordinates.append((lat / factor, lon / factor))

    return coordinates
