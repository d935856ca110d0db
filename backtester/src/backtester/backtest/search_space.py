"""
Search spaces enumerate the parameter combinations an optimizer tries.

* :class:`GridSearch` – every combination of the values given per
  parameter (cartesian product, deterministic order).
* :class:`RandomSearch` – uniformly sampled combinations; the sequence
  is infinite unless a size is given and is replayed identically on
  every iteration when a seed is set.
* :class:`EmptySearchSpace` – a single empty combination, for runs
  without parameters.

Every combination is a :class:`Params` mapping.
"""

from __future__ import annotations

import abc
import itertools
import math
import random
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

Number = Union[int, float]


class Params(Dict[str, Any]):
    """Parameter assignment for a single trial."""

    def get_int(self, name: str) -> int:
        return int(self[name])

    def get_float(self, name: str) -> float:
        return float(self[name])

    def get_str(self, name: str) -> str:
        return str(self[name])


class SearchSpace(abc.ABC):
    """Enumerable set of parameter assignments."""

    @abc.abstractmethod
    def __iter__(self) -> Iterator[Params]:
        """Yield the parameter assignments of this space."""

    @property
    def is_finite(self) -> bool:
        return True

    @abc.abstractmethod
    def __len__(self) -> int:
        """Number of assignments; only defined for finite spaces."""


class EmptySearchSpace(SearchSpace):
    """Space containing exactly one empty assignment."""

    def __iter__(self) -> Iterator[Params]:
        yield Params()

    def __len__(self) -> int:
        return 1


class GridSearch(SearchSpace):
    """Cartesian product of discrete values per parameter.

    Parameters are enumerated in the order they were added, the last
    one varying fastest:

    >>> space = GridSearch()
    >>> space.add_range("x", 1, 2)
    >>> space.add("y", ["a", "b"])
    >>> [dict(p) for p in space]
    [{'x': 1, 'y': 'a'}, {'x': 1, 'y': 'b'}, {'x': 2, 'y': 'a'}, {'x': 2, 'y': 'b'}]
    """

    def __init__(self) -> None:
        self._params: Dict[str, List[Any]] = {}

    def add(self, name: str, values: Iterable[Any]) -> None:
        values = list(values)
        if not values:
            raise ValueError(f"parameter {name} needs at least one value")
        self._params[name] = values

    def add_range(self, name: str, first: int, last: int, step: int = 1) -> None:
        """Add an inclusive integer range ``first..last``."""
        if step <= 0:
            raise ValueError("step must be positive")
        self.add(name, range(first, last + 1, step))

    @property
    def names(self) -> List[str]:
        return list(self._params)

    def __iter__(self) -> Iterator[Params]:
        if not self._params:
            yield Params()
            return
        names = list(self._params)
        for combination in itertools.product(*self._params.values()):
            yield Params(zip(names, combination))

    def __len__(self) -> int:
        return math.prod(len(v) for v in self._params.values())


class RandomSearch(SearchSpace):
    """Uniform random samples from per-parameter ranges.

    Parameters
    ----------
    size : int, optional
        Number of samples per iteration.  ``None`` yields an endless
        sequence.
    seed : int, optional
        When set, every iteration restarts the same sequence.
    """

    def __init__(self, size: Optional[int] = None, seed: Optional[int] = None) -> None:
        if size is not None and size <= 0:
            raise ValueError("size must be positive")
        self.size = size
        self.seed = seed
        self._params: Dict[str, Tuple[str, Any]] = {}

    def add(self, name: str, low: Number, high: Number) -> None:
        """Sample ``name`` uniformly from ``[low, high]``.

        Integers are drawn when both bounds are ints, floats otherwise.
        """
        if high < low:
            raise ValueError(f"invalid range for {name}: {low} > {high}")
        kind = "int" if isinstance(low, int) and isinstance(high, int) else "float"
        self._params[name] = (kind, (low, high))

    def add_choice(self, name: str, values: Sequence[Any]) -> None:
        """Sample ``name`` uniformly from a list of values."""
        if not values:
            raise ValueError(f"parameter {name} needs at least one value")
        self._params[name] = ("choice", list(values))

    @property
    def is_finite(self) -> bool:
        return self.size is not None

    def _sample(self, rng: random.Random) -> Params:
        params = Params()
        for name, (kind, spec) in self._params.items():
            if kind == "int":
                params[name] = rng.randint(*spec)
            elif kind == "float":
                params[name] = rng.uniform(*spec)
            else:
                params[name] = rng.choice(spec)
        return params

    def __iter__(self) -> Iterator[Params]:
        rng = random.Random(self.seed)
        counter = itertools.count() if self.size is None else range(self.size)
        for _ in counter:
            yield self._sample(rng)

    def __len__(self) -> int:
        if self.size is None:
            raise TypeError("an unbounded random search space has no length")
        return self.size
