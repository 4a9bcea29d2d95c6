"""
Tunable tolerances and heuristic thresholds for an analysis run.

Every constant that decides an edge case (tie handling, zero-probability
cut-offs, homogeneity thresholds) lives here so that callers can choose a
different convention explicitly instead of relying on module globals.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class ModeTiePolicy(str, Enum):
    """
    How tied maximum probabilities are reported as the mode.

    ALL_TIED: every value within `mode_tolerance` of the maximum is a mode.
    NONE_IF_UNIFORM: as ALL_TIED, except that a distribution where every one
        of several values ties reports no mode at all.
    """

    ALL_TIED = "all_tied"
    NONE_IF_UNIFORM = "none_if_uniform"


@dataclass(frozen=True)
class AnalysisPolicy:
    probability_tolerance: float = 1e-5
    zero_probability: float = 1e-9
    mode_tolerance: float = 1e-9
    mode_tie_policy: ModeTiePolicy = ModeTiePolicy.ALL_TIED
    variance_floor: float = 1e-9
    homogeneity_hellinger_threshold: float = 0.5
    homogeneity_gjs_threshold: float = 0.5
    renormalize_tolerance: float = 1e-5
    max_enumerated_sequences: int = 250_000

    def validate(self) -> "AnalysisPolicy":
        """
        Check that tolerances are non-negative and thresholds lie in [0, 1].

        Returns:
            The policy itself, so calls can be chained.

        Raises:
            ValueError: If a field is out of range.
        """
        for name in (
            "probability_tolerance",
            "zero_probability",
            "mode_tolerance",
            "variance_floor",
            "renormalize_tolerance",
        ):
            if float(getattr(self, name)) < 0.0:
                raise ValueError(f"{name} must be non-negative")
        for name in ("homogeneity_hellinger_threshold", "homogeneity_gjs_threshold"):
            v = float(getattr(self, name))
            if v < 0.0 or v > 1.0:
                raise ValueError(f"{name} must be in [0, 1]")
        if int(self.max_enumerated_sequences) <= 0:
            raise ValueError("max_enumerated_sequences must be positive")
        ModeTiePolicy(self.mode_tie_policy)
        return self

    def with_overrides(self, **changes: object) -> "AnalysisPolicy":
        return replace(self, **changes).validate()


DEFAULT_POLICY = AnalysisPolicy()
