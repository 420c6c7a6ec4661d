"""
Random number source.

A single stateful Mersenne Twister (numpy MT19937) drives every draw so that a
run is reproducible from a captured state token:

    r1 = Random()                                  # deterministic default seed
    r2 = Random.from_dict(r1.to_dict())            # copy engine state
    r3 = Random.from_dict({"randomseed": "hardware"})  # non-deterministic seed
"""

import numpy as np
from typing import Iterable, Optional, Sequence

from mcspace.errors import ConfigurationError

DEFAULT_SEED = 5489  # std::mt19937 default
MT19937_STATE_SIZE = 624


class Random:
    """Uniform doubles in [0,1), uniform integers and element sampling."""

    def __init__(self, seed: Optional[int] = DEFAULT_SEED):
        self.engine = np.random.Generator(np.random.MT19937(seed))

    def seed(self, seed: Optional[int] = None):
        """Re-seed; `None` seeds from OS entropy."""
        self.engine = np.random.Generator(np.random.MT19937(seed))

    def __call__(self) -> float:
        """Double in uniform range [0,1)."""
        return float(self.engine.random())

    def range(self, min: int, max: int) -> int:
        """Integer in uniform range [min, max] (both inclusive)."""
        return int(self.engine.integers(min, max, endpoint=True))

    def sample(self, seq: Sequence):
        """Random element of a non-empty sequence."""
        return seq[self.range(0, len(seq) - 1)]

    # ------------------------------------------------------------------
    # State capture
    # ------------------------------------------------------------------

    @property
    def state(self) -> str:
        """Opaque, human-readable engine state token."""
        st = self.engine.bit_generator.state['state']
        return " ".join(str(int(k)) for k in st['key']) + f" {int(st['pos'])}"

    @state.setter
    def state(self, token: str):
        try:
            values = [int(v) for v in token.split()]
        except ValueError as e:
            raise ConfigurationError(f"unparsable random state token: {e}") from e
        if len(values) != MT19937_STATE_SIZE + 1:
            raise ConfigurationError(
                f"random state token must hold {MT19937_STATE_SIZE + 1} integers, got {len(values)}")
        bitgen = np.random.MT19937()
        bitgen.state = {
            'bit_generator': 'MT19937',
            'state': {'key': np.array(values[:-1], dtype=np.uint32), 'pos': values[-1]},
        }
        self.engine = np.random.Generator(bitgen)

    def to_dict(self) -> dict:
        return {"randomseed": self.state}

    @classmethod
    def from_dict(cls, j: Optional[dict]) -> "Random":
        """
        Create from a record.

        Accepted values for `randomseed` (or `seed`): a state token,
        "hardware" (OS entropy) or "default"/missing (deterministic seed).
        """
        r = cls()
        if not j:
            return r
        if not isinstance(j, dict):
            raise ConfigurationError("random: mapping expected")
        seed = j.get("randomseed", j.get("seed", "default"))
        if isinstance(seed, int) and not isinstance(seed, bool):
            r.seed(seed)
        elif seed == "hardware":
            r.seed()
        elif seed in ("default", "", None):
            pass
        elif isinstance(seed, str):
            r.state = seed
        else:
            raise ConfigurationError(f"random: invalid seed {seed!r}")
        return r


class DiscreteDistribution:
    """
    Pick one of N indices with probability proportional to its weight.

    Adding a weight rebuilds the cumulative table in O(k).
    """

    def __init__(self, weights: Iterable[float] = ()):
        self._weights = []
        self._cumulative = np.zeros(0)
        for w in weights:
            self._weights.append(self._check(w))
        self._rebuild()

    @staticmethod
    def _check(weight: float) -> float:
        weight = float(weight)
        if not np.isfinite(weight) or weight < 0:
            raise ConfigurationError(f"invalid weight {weight}; must be finite and non-negative")
        return weight

    def _rebuild(self):
        self._cumulative = np.cumsum(self._weights) if self._weights else np.zeros(0)

    def push(self, weight: float = 1.0):
        self._weights.append(self._check(weight))
        self._rebuild()

    def __len__(self) -> int:
        return len(self._weights)

    @property
    def weights(self) -> list:
        return list(self._weights)

    def probabilities(self) -> np.ndarray:
        total = self._cumulative[-1] if len(self._cumulative) else 0.0
        if total <= 0:
            return np.zeros(len(self._weights))
        return np.asarray(self._weights) / total

    def __call__(self, rand: Random) -> int:
        if not len(self._cumulative) or self._cumulative[-1] <= 0:
            raise ConfigurationError("cannot sample from an empty or all-zero weight distribution")
        x = rand() * self._cumulative[-1]
        return int(min(np.searchsorted(self._cumulative, x, side='right'), len(self._weights) - 1))
