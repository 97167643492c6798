"""Coordinate record reported by the browser's geolocation callback."""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List

MAPS_URL = "https://www.google.com/maps?q={lat},{lon}"

REQUIRED_FIELDS = ("latitude", "longitude", "accuracy", "timestamp")


class InvalidReport(ValueError):
    """Raised when a wire report is not a complete, numeric coordinate."""


def _number(payload: Dict[str, Any], field: str) -> float:
    value = payload[field]
    # bool is an int subclass but never a valid reading
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidReport(f"{field} must be a number")
    try:
        number = float(value)
    except OverflowError as exc:
        raise InvalidReport(f"{field} is out of range") from exc
    if not math.isfinite(number):
        raise InvalidReport(f"{field} must be finite")
    return number


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float
    accuracy: float
    timestamp: int

    @classmethod
    def from_dict(cls, payload: Any) -> "Coordinate":
        if not isinstance(payload, dict):
            raise InvalidReport("report must be a JSON object")
        missing = [field for field in REQUIRED_FIELDS if field not in payload]
        if missing:
            raise InvalidReport(f"missing fields: {', '.join(missing)}")

        latitude = _number(payload, "latitude")
        longitude = _number(payload, "longitude")
        accuracy = _number(payload, "accuracy")
        timestamp = payload["timestamp"]
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise InvalidReport("timestamp must be an integer")

        if not -90.0 <= latitude <= 90.0:
            raise InvalidReport("latitude out of range")
        if not -180.0 <= longitude <= 180.0:
            raise InvalidReport("longitude out of range")
        if accuracy < 0:
            raise InvalidReport("accuracy must not be negative")

        return cls(latitude=latitude, longitude=longitude, accuracy=accuracy, timestamp=timestamp)

    @classmethod
    def from_json(cls, text: str) -> "Coordinate":
        """Decode a POST /update body, raising InvalidReport on any defect."""
        try:
            payload = json.loads(text)
        except (TypeError, ValueError) as exc:
            raise InvalidReport("body is not valid JSON") from exc
        return cls.from_dict(payload)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def as_list(self) -> List[float]:
        return [self.latitude, self.longitude, self.accuracy]

    @property
    def captured_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000.0, tz=timezone.utc)

    @property
    def maps_url(self) -> str:
        return MAPS_URL.format(lat=self.latitude, lon=self.longitude)
