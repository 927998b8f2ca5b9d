from dataclasses import dataclass

from .hash_codec import FINGERPRINT_BITS

DEFAULT_THRESHOLD = 14


@dataclass(frozen=True)
class ThresholdPolicy:
    """Binary accept/reject on Hamming distance plus a derived similarity score.

    Distances 0-10 are near-identical photos, 11-15 the same pattern shot
    differently, 21 and above unrelated.
    """

    threshold: int = DEFAULT_THRESHOLD
    bits: int = FINGERPRINT_BITS

    def __post_init__(self):
        if not 0 <= self.threshold <= self.bits:
            raise ValueError(f"threshold must be within [0, {self.bits}], got {self.threshold}")

    def is_match(self, distance: int) -> bool:
        return distance <= self.threshold

    def score(self, distance: int) -> float:
        return 1 - distance / self.bits
