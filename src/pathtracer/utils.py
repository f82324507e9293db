from typing import Optional

import numpy as np
import torch as t
import torch.nn.functional as F
from jaxtyping import Bool, Float, jaxtyped
from typeguard import typechecked as typechecker

from .config import NEAR_ZERO_EPS, device, dtype


@jaxtyped(typechecker=typechecker)
def degrees_to_radians(degrees: float) -> float:
    return degrees * np.pi / 180.0


def _uniform(shape: tuple[int, ...], generator: Optional[t.Generator]) -> t.Tensor:
    return t.rand(*shape, generator=generator, device=device, dtype=dtype)


@jaxtyped(typechecker=typechecker)
def unit_vector(vec: Float[t.Tensor, "... 3"]) -> Float[t.Tensor, "... 3"]:
    return F.normalize(vec, dim=-1)


@jaxtyped(typechecker=typechecker)
def random_unit_vector(
    shape: tuple[int, ...], generator: Optional[t.Generator] = None
) -> Float[t.Tensor, "... 3"]:
    """Uniform directions on the unit sphere, shape ``(*shape, 3)``.

    Normalised isotropic Gaussians are uniform on the sphere, so no rejection
    loop is needed.
    """
    vec = t.randn(*shape, 3, generator=generator, device=device, dtype=dtype)
    return F.normalize(vec, dim=-1)


@jaxtyped(typechecker=typechecker)
def random_in_unit_disk(
    shape: tuple[int, ...], generator: Optional[t.Generator] = None
) -> Float[t.Tensor, "... 2"]:
    r = t.sqrt(_uniform(shape, generator))
    theta = _uniform(shape, generator) * 2 * np.pi
    return t.stack([r * t.cos(theta), r * t.sin(theta)], dim=-1)


@jaxtyped(typechecker=typechecker)
def sample_square(shape: tuple[int, ...], generator: Optional[t.Generator] = None) -> Float[t.Tensor, "... 2"]:
    """Offsets uniformly distributed in the unit square [-0.5, 0.5)^2."""
    return _uniform((*shape, 2), generator) - 0.5


@jaxtyped(typechecker=typechecker)
def near_zero(vec: Float[t.Tensor, "... 3"]) -> Bool[t.Tensor, "..."]:
    # every component must be tiny, not just the first
    return (vec.abs() < NEAR_ZERO_EPS).all(dim=-1)
