"""Runtime configuration: environment-driven settings, defaults, and saved places."""

import logging
import os
from dataclasses import dataclass

from poiscope.models import Coordinate

DEFAULT_OVERPASS_URL = "https://overpass-api.de/api/interpreter"
DEFAULT_FETCH_TIMEOUT_MS = 15000
DEFAULT_SELECTION_DEBOUNCE_MS = 800

DEFAULT_RADIUS_M = 500
RADIUS_STEP_M = 50
RADIUS_MIN_M = 50
RADIUS_MAX_M = 1500
RADIUS_CEILING_M = 20000  # Largest radius the UI may ever be configured to allow


@dataclass(frozen=True)
class SavedPlace:
    name: str
    coordinate: Coordinate


SAVED_PLACES: tuple[SavedPlace, ...] = (
    SavedPlace("Berlin - TV Tower", Coordinate(52.5208, 13.4095)),
    SavedPlace("Bangalore - Brigade Road", Coordinate(12.9719, 77.6086)),
    SavedPlace("Dubai - Burj Khalifa", Coordinate(25.1972, 55.2744)),
    SavedPlace("Los Angeles - Downtown", Coordinate(34.0522, -118.2437)),
    SavedPlace("New York - Lower Manhattan", Coordinate(40.7075, -74.0113)),
    SavedPlace("Paris - Eiffel Tower", Coordinate(48.8584, 2.2945)),
    SavedPlace("Rome - Colosseum", Coordinate(41.8902, 12.4922)),
    SavedPlace("Tokyo - Tokyo Tower", Coordinate(35.6586, 139.7454)),
    SavedPlace("São Paulo - Downtown", Coordinate(-23.5505, -46.6333)),
    SavedPlace("Sydney - Downtown", Coordinate(-33.8688, 151.2093)),
)

DEFAULT_PLACE = next(p for p in SAVED_PLACES if p.name == "New York - Lower Manhattan")


@dataclass(frozen=True)
class Settings:
    overpass_url: str = DEFAULT_OVERPASS_URL
    fetch_timeout_ms: int = DEFAULT_FETCH_TIMEOUT_MS
    selection_debounce_ms: int = DEFAULT_SELECTION_DEBOUNCE_MS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Read POISCOPE_* environment variables, falling back to defaults.

        Raises:
            ValueError: If a numeric variable is not an integer.
        """
        return cls(
            overpass_url=os.environ.get("POISCOPE_OVERPASS_URL", DEFAULT_OVERPASS_URL),
            fetch_timeout_ms=int(
                os.environ.get("POISCOPE_FETCH_TIMEOUT_MS", DEFAULT_FETCH_TIMEOUT_MS)
            ),
            selection_debounce_ms=int(
                os.environ.get(
                    "POISCOPE_SELECTION_DEBOUNCE_MS", DEFAULT_SELECTION_DEBOUNCE_MS
                )
            ),
            log_level=os.environ.get("POISCOPE_LOG_LEVEL", "INFO"),
        )


def clamp_radius(value: float, lo: int = RADIUS_MIN_M, hi: int = RADIUS_MAX_M) -> int:
    """Clamp a user-entered radius into [lo, hi] and round to whole metres."""
    return int(round(min(max(value, lo), hi)))


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
