from typing import Sequence

import torch as t
from jaxtyping import Float

device = t.device("cuda" if t.cuda.is_available() else "cpu")
dtype = t.float64

# Rays start this far along their direction to skip self-intersection ("shadow acne")
T_MIN = 0.001
NEAR_ZERO_EPS = 1e-8

DEFAULT_BATCH_SIZE = 10_000


def tensor(values: Sequence[float] | t.Tensor) -> Float[t.Tensor, "..."]:
    """Builds a tensor on the render device with the render dtype."""
    return t.as_tensor(values, dtype=dtype, device=device)


SKY_WHITE = tensor([1.0, 1.0, 1.0])
SKY_BLUE = tensor([0.5, 0.7, 1.0])
