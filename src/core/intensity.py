"""Static intent -> intensity weights"""

from typing import Mapping, Optional

MAX_INTENSITY = 8

# Severity weight per intent label, 1 (mild) .. MAX_INTENSITY (critical).
DEFAULT_INTENSITIES: dict[str, int] = {
    "Happy": 1,
    "Greeting": 1,
    "Bored": 2,
    "Tired": 3,
    "Stressed": 4,
    "Anxious": 5,
    "Angry": 5,
    "Lonely": 6,
    "Depressed": 7,
    "SelfHarm": 8,
}


class IntensityTable:
    """Pure lookup from intent label to intensity; unknown intents weigh 0"""

    def __init__(self, weights: Optional[Mapping[str, int]] = None) -> None:
        self._weights = dict(DEFAULT_INTENSITIES if weights is None else weights)
        for intent, weight in self._weights.items():
            if not 0 <= weight <= MAX_INTENSITY:
                raise ValueError(
                    f"Intensity for {intent!r} must be within 0..{MAX_INTENSITY}, got {weight}"
                )

    def lookup(self, intent: str) -> int:
        return self._weights.get(intent, 0)

    def __contains__(self, intent: str) -> bool:
        return intent in self._weights
