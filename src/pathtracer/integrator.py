"""Iterative light transport: the bounded-depth Monte-Carlo estimator run as a wavefront.

Every ray carries the product of the attenuations met so far. A bounce either
retires the ray (sky or absorption) or replaces it with its scattered ray, which
is the same as ``attenuation * ray_color(scattered, depth - 1)`` unrolled.
"""

import math
from typing import Optional

import torch as t
from jaxtyping import Float, jaxtyped
from typeguard import typechecked as typechecker

from .config import SKY_BLUE, SKY_WHITE, T_MIN, device, dtype
from .hittable import Hittable
from .interval import Interval
from .utils import unit_vector


@jaxtyped(typechecker=typechecker)
def background_color(ray_directions: Float[t.Tensor, "N 3"]) -> Float[t.Tensor, "N 3"]:
    """Vertical white-to-sky-blue gradient keyed on the unit direction's y component."""
    unit_directions = unit_vector(ray_directions)
    a = 0.5 * (unit_directions[:, 1] + 1.0)
    return (1.0 - a).unsqueeze(-1) * SKY_WHITE + a.unsqueeze(-1) * SKY_BLUE


@jaxtyped(typechecker=typechecker)
def ray_color(
    pixel_rays: Float[t.Tensor, "N 3 2"],
    world: Hittable,
    max_depth: int,
    generator: Optional[t.Generator] = None,
) -> Float[t.Tensor, "N 3"]:
    N = pixel_rays.shape[0]
    colors = t.zeros((N, 3), dtype=dtype, device=device)
    attenuation = t.ones((N, 3), dtype=dtype, device=device)
    rays = pixel_rays.clone()
    active_mask = t.ones(N, dtype=t.bool, device=device)

    for _ in range(max(max_depth, 0)):
        if not active_mask.any():
            break

        hit_record = world.hit(rays, Interval(T_MIN, math.inf))

        # Rays that escape pick up the sky
        no_hit_mask = (~hit_record.hit) & active_mask
        if no_hit_mask.any():
            colors[no_hit_mask] += attenuation[no_hit_mask] * background_color(rays[no_hit_mask, :, 1])
            active_mask[no_hit_mask] = False

        hit_mask = hit_record.hit & active_mask
        if not hit_mask.any():
            break

        # Group indices by material and scatter each group in one call
        for material_id, material in enumerate(hit_record.materials):
            indices = (hit_mask & (hit_record.material_id == material_id)).nonzero(as_tuple=False).squeeze(-1)
            if indices.numel() == 0:
                continue

            scatter_mask, mat_attenuation, scattered_rays = material.scatter(
                rays[indices], hit_record.select(indices), generator
            )
            attenuation[indices] *= mat_attenuation
            rays[indices] = scattered_rays

            # Absorbed rays contribute black
            absorbed = indices[~scatter_mask]
            active_mask[absorbed] = False

    # Rays still bouncing after max_depth are treated as having lost all energy
    return colors
