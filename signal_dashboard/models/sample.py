"""Sample data structures."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Sample:
    """A single timestamped value. Timestamp is seconds since the epoch."""
    value: float
    timestamp: float

    @property
    def epoch_ms(self) -> int:
        """Timestamp in whole milliseconds since the epoch."""
        return int(self.timestamp * 1000)
