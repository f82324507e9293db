"""Rays are packed as ``[..., 3, 2]`` tensors: origin in ``[..., 0]``, direction in ``[..., 1]``."""

import torch as t
from jaxtyping import Float, jaxtyped
from typeguard import typechecked as typechecker


@jaxtyped(typechecker=typechecker)
def make_rays(
    origin: Float[t.Tensor, "*batch 3"], direction: Float[t.Tensor, "*batch 3"]
) -> Float[t.Tensor, "*batch 3 2"]:
    return t.stack([origin, direction], dim=-1)


@jaxtyped(typechecker=typechecker)
def ray_at(rays: Float[t.Tensor, "N 3 2"], t_values: Float[t.Tensor, "N"]) -> Float[t.Tensor, "N 3"]:
    return rays[:, :, 0] + t_values.unsqueeze(-1) * rays[:, :, 1]
