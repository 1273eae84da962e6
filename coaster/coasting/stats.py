"""Per-category counters for coasted and skipped paths."""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass
class CoastStats:
    """Counts of destring events by path category and outcome.

    Every destring event lands in exactly one counter: regular or prime
    pillar, coasted or skipped.  Workers each keep their own instance and
    the coordinator sums them with ``+``.
    """

    regular_coasted: int = 0
    prime_coasted: int = 0
    regular_skipped: int = 0
    prime_skipped: int = 0

    def record(self, *, prime: bool, coasted: bool) -> None:
        if prime and coasted:
            self.prime_coasted += 1
        elif prime:
            self.prime_skipped += 1
        elif coasted:
            self.regular_coasted += 1
        else:
            self.regular_skipped += 1

    @property
    def total(self) -> int:
        return self.regular_coasted + self.prime_coasted + self.regular_skipped + self.prime_skipped

    def as_dict(self) -> dict[str, int]:
        return asdict(self)

    def __add__(self, other: CoastStats) -> CoastStats:
        if not isinstance(other, CoastStats):
            return NotImplemented
        return CoastStats(
            regular_coasted=self.regular_coasted + other.regular_coasted,
            prime_coasted=self.prime_coasted + other.prime_coasted,
            regular_skipped=self.regular_skipped + other.regular_skipped,
            prime_skipped=self.prime_skipped + other.prime_skipped,
        )
