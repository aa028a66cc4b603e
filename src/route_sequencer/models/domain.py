"""Domain models for stops and their coordinates."""

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True, frozen=True)
class Coordinates:
    """A WGS84 point in decimal degrees."""

    latitude: float
    longitude: float


@dataclass(slots=True)
class Stop:
    """A place to visit, optionally pinned to a position in the final order."""

    id: str
    address: str
    coordinates: Optional[Coordinates] = None
    is_locked: bool = False
    position: Optional[int] = None

    @property
    def is_located(self) -> bool:
        return self.coordinates is not None
