import math
from typing import Union

import torch as t

Bound = Union[float, t.Tensor]


class Interval:
    """Acceptance window for the ray parameter.

    Bounds are plain floats or per-ray tensors; the latter lets an aggregate
    narrow the window independently for every ray in a batch.
    """

    def __init__(self, min: Bound = math.inf, max: Bound = -math.inf):
        self.min = min
        self.max = max

    def size(self) -> Bound:
        return self.max - self.min

    def contains(self, x: t.Tensor) -> t.Tensor:
        return (self.min <= x) & (x <= self.max)

    def surrounds(self, x: t.Tensor) -> t.Tensor:
        return (self.min < x) & (x < self.max)

    def clamp(self, x: t.Tensor) -> t.Tensor:
        return x.clamp(self.min, self.max)

    def unsqueeze(self, dim: int) -> "Interval":
        """Adds an axis to tensor bounds so they broadcast against ``[N, M]`` candidates."""
        lo = self.min.unsqueeze(dim) if isinstance(self.min, t.Tensor) else self.min
        hi = self.max.unsqueeze(dim) if isinstance(self.max, t.Tensor) else self.max
        return Interval(lo, hi)

    def __repr__(self) -> str:
        return f"Interval({self.min!r}, {self.max!r})"


EMPTY = Interval(math.inf, -math.inf)
UNIVERSE = Interval(-math.inf, math.inf)
