from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import (
    Callable,
    Dict,
    Iterable,
    Iterator,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

Outcome = Tuple[str, ...]


class VariableType(str, Enum):
    """
    Measurement scale of a random variable.

    The scale drives value ordering, which single-variable metrics apply and
    which pairwise measures are meaningful.
    """

    NUMERICAL = "Numerical"
    NOMINAL = "Nominal"
    ORDINAL = "Ordinal"


@dataclass(frozen=True)
class TypeCapabilities:
    has_moments: bool
    is_categorical: bool


TYPE_CAPABILITIES: Dict[VariableType, TypeCapabilities] = {
    VariableType.NUMERICAL: TypeCapabilities(has_moments=True, is_categorical=False),
    VariableType.NOMINAL: TypeCapabilities(has_moments=False, is_categorical=True),
    VariableType.ORDINAL: TypeCapabilities(has_moments=False, is_categorical=True),
}


def to_float(value: object) -> Optional[float]:
    """Return ``value`` as a finite float, or None if it is not numeric."""
    try:
        x = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(x):
        return None
    return x


def value_sort_key(
    vtype: VariableType, ordinal_order: Sequence[str] = ()
) -> Callable[[str], tuple]:
    """
    Return the ordering function for values of a variable of type ``vtype``.

    Numerical values sort ascending (string form breaks ties between e.g. "1"
    and "1.0"); Ordinal values follow the declared order, with undeclared
    values placed after it lexicographically; Nominal values sort
    lexicographically.
    """
    if vtype is VariableType.NUMERICAL:

        def numeric_key(value: str) -> tuple:
            x = to_float(value)
            # Non-numeric strings (only possible in theoretical models) go last.
            return (0, x, str(value)) if x is not None else (1, 0.0, str(value))

        return numeric_key

    if vtype is VariableType.ORDINAL and ordinal_order:
        rank = {str(v): i for i, v in enumerate(ordinal_order)}
        n = len(rank)

        def ordinal_key(value: str) -> tuple:
            return (rank.get(str(value), n), str(value))

        return ordinal_key

    def nominal_key(value: str) -> tuple:
        return (str(value),)

    return nominal_key


class JointPMF(Mapping[Outcome, float]):
    """
    Immutable probability mass function keyed by ordered value tuples.

    All keys share one arity (the number of variables represented). Keys are
    plain tuples of strings, so equality and hashing are tuple semantics.
    Insertion order is preserved and is the order of first observation.
    """

    __slots__ = ("_probs", "_arity")

    def __init__(
        self,
        items: Union[Mapping[Outcome, float], Iterable[Tuple[Outcome, float]]] = (),
    ) -> None:
        pairs = items.items() if isinstance(items, Mapping) else items
        probs: Dict[Outcome, float] = {}
        arity: Optional[int] = None
        for key, p in pairs:
            k = tuple(str(v) for v in key)
            if arity is None:
                arity = len(k)
            elif len(k) != arity:
                raise ValueError(
                    f"Outcome {k!r} has arity {len(k)}, expected {arity}"
                )
            p = float(p)
            if p < 0.0 or not math.isfinite(p):
                raise ValueError(f"Invalid probability {p!r} for outcome {k!r}")
            probs[k] = probs.get(k, 0.0) + p
        self._probs = probs
        self._arity = int(arity or 0)

    @classmethod
    def from_counts(cls, counts: Mapping[Outcome, int]) -> "JointPMF":
        total = float(sum(counts.values()))
        if total <= 0.0:
            return cls()
        return cls((k, c / total) for k, c in counts.items())

    @classmethod
    def from_observations(cls, observations: Iterable[Outcome]) -> "JointPMF":
        return cls.from_counts(Counter(tuple(o) for o in observations))

    @property
    def arity(self) -> int:
        return self._arity

    def total(self) -> float:
        return float(math.fsum(self._probs.values()))

    def support(self, eps: float = 0.0) -> Tuple[Outcome, ...]:
        return tuple(k for k, p in self._probs.items() if p > eps)

    def normalized(self) -> "JointPMF":
        s = self.total()
        if s <= 0.0:
            return JointPMF()
        return JointPMF((k, p / s) for k, p in self._probs.items())

    def __getitem__(self, key: Outcome) -> float:
        return self._probs[tuple(key)]

    def get(self, key: Outcome, default: float = 0.0) -> float:  # type: ignore[override]
        return self._probs.get(tuple(key), default)

    def __iter__(self) -> Iterator[Outcome]:
        return iter(self._probs)

    def __len__(self) -> int:
        return len(self._probs)

    def __repr__(self) -> str:
        return f"JointPMF({self._probs!r})"


@dataclass(frozen=True)
class RandomVariable:
    """
    One observed variable: a column of string-encoded samples plus its scale.

    `ordinal_order` is only meaningful for Ordinal variables and must cover
    every observed value.
    """

    id: str
    name: str
    data: Tuple[str, ...]
    type: VariableType = VariableType.NOMINAL
    ordinal_order: Tuple[str, ...] = ()

    def __init__(
        self,
        id: str,
        name: str,
        data: Sequence[str],
        type: Union[VariableType, str] = VariableType.NOMINAL,
        ordinal_order: Sequence[str] = (),
    ) -> None:
        name = str(name).strip()
        if not name:
            raise ValueError("Variable name cannot be empty")
        vtype = VariableType(type)
        values = tuple(str(v) for v in data)
        order = tuple(str(v) for v in ordinal_order)

        if vtype is VariableType.NUMERICAL:
            bad = [v for v in values if to_float(v) is None]
            if bad:
                raise ValueError(
                    f"Numerical variable {name!r} has non-numeric value {bad[0]!r}"
                )
        if vtype is VariableType.ORDINAL:
            if not order:
                raise ValueError(f"Ordinal variable {name!r} needs a declared order")
            if len(set(order)) != len(order):
                raise ValueError(f"Ordinal order for {name!r} has duplicate values")
            missing = sorted(set(values) - set(order))
            if missing:
                raise ValueError(
                    f"Ordinal order for {name!r} does not cover observed values: "
                    f"{', '.join(missing)}"
                )

        object.__setattr__(self, "id", str(id))
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "data", values)
        object.__setattr__(self, "type", vtype)
        object.__setattr__(self, "ordinal_order", order)

    @property
    def capabilities(self) -> TypeCapabilities:
        return TYPE_CAPABILITIES[self.type]

    @property
    def is_categorical(self) -> bool:
        return self.capabilities.is_categorical

    @property
    def is_numerical(self) -> bool:
        return self.type is VariableType.NUMERICAL

    def sort_key(self) -> Callable[[str], tuple]:
        return value_sort_key(self.type, self.ordinal_order)

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class DistributionPoint:
    value: str
    probability: float
    cumulative: float


Distribution = Tuple[DistributionPoint, ...]
