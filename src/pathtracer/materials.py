from abc import ABC, abstractmethod
from typing import Optional, Sequence, Union

import torch as t
from jaxtyping import Bool, Float, jaxtyped
from typeguard import typechecked as typechecker

from .config import device, dtype, tensor
from .hittable import HitRecord
from .ray import make_rays
from .utils import near_zero, random_unit_vector, unit_vector

ColorLike = Union[Float[t.Tensor, "3"], Sequence[float]]


def _as_color(albedo: ColorLike) -> Float[t.Tensor, "3"]:
    color = tensor(albedo)
    if color.shape != (3,):
        raise ValueError(f"albedo must have 3 components, got shape {tuple(color.shape)}")
    return color


@jaxtyped(typechecker=typechecker)
def reflect(v: Float[t.Tensor, "N 3"], n: Float[t.Tensor, "N 3"]) -> Float[t.Tensor, "N 3"]:
    # Reflects vector v around normal n
    return v - 2 * (v * n).sum(dim=1, keepdim=True) * n


@jaxtyped(typechecker=typechecker)
def refract(
    uv: Float[t.Tensor, "N 3"], n: Float[t.Tensor, "N 3"], etai_over_etat: Float[t.Tensor, "N 1"]
) -> Float[t.Tensor, "N 3"]:
    cos_theta = t.clamp((-uv * n).sum(dim=1, keepdim=True), max=1.0)
    r_out_perp = etai_over_etat * (uv + cos_theta * n)
    r_out_parallel = -t.sqrt(t.abs(1.0 - (r_out_perp**2).sum(dim=1, keepdim=True))) * n
    return r_out_perp + r_out_parallel


@jaxtyped(typechecker=typechecker)
def reflectance(cosine: Float[t.Tensor, "N 1"], ref_idx: Float[t.Tensor, "N 1"]) -> Float[t.Tensor, "N 1"]:
    """Schlick's approximation of the Fresnel reflectance."""
    r0 = ((1.0 - ref_idx) / (1.0 + ref_idx)) ** 2
    return r0 + (1.0 - r0) * (1.0 - cosine) ** 5


class Material(ABC):
    """Closed set of surface models: Lambertian, Metal and Dielectric.

    ``scatter`` returns, per ray, whether it scattered (``False`` means it was
    absorbed), the attenuation color and the scattered ray.
    """

    @abstractmethod
    def scatter(
        self,
        r_in: Float[t.Tensor, "N 3 2"],
        hit_record: HitRecord,
        generator: Optional[t.Generator] = None,
    ) -> tuple[
        Bool[t.Tensor, "N"],
        Float[t.Tensor, "N 3"],
        Float[t.Tensor, "N 3 2"],
    ]:
        pass


class Lambertian(Material):
    def __init__(self, albedo: ColorLike):
        self.albedo = _as_color(albedo)

    def __repr__(self) -> str:
        return f"Lambertian(albedo={self.albedo.tolist()})"

    @jaxtyped(typechecker=typechecker)
    def scatter(
        self,
        r_in: Float[t.Tensor, "N 3 2"],
        hit_record: HitRecord,
        generator: Optional[t.Generator] = None,
    ) -> tuple[
        Bool[t.Tensor, "N"],
        Float[t.Tensor, "N 3"],
        Float[t.Tensor, "N 3 2"],
    ]:
        N = r_in.shape[0]
        normals = hit_record.normal

        scatter_direction = normals + random_unit_vector((N,), generator)

        # Catch degenerate scatter direction
        scatter_direction = t.where(near_zero(scatter_direction).unsqueeze(-1), normals, scatter_direction)

        new_rays = make_rays(hit_record.point, scatter_direction)
        attenuation = self.albedo.expand(N, 3)
        scatter_mask = t.ones(N, dtype=t.bool, device=device)

        return scatter_mask, attenuation, new_rays


class Metal(Material):
    def __init__(self, albedo: ColorLike, fuzz: float = 0.0):
        self.albedo = _as_color(albedo)
        self.fuzz = max(0.0, min(float(fuzz), 1.0))

    def __repr__(self) -> str:
        return f"Metal(albedo={self.albedo.tolist()}, fuzz={self.fuzz})"

    @jaxtyped(typechecker=typechecker)
    def scatter(
        self,
        r_in: Float[t.Tensor, "N 3 2"],
        hit_record: HitRecord,
        generator: Optional[t.Generator] = None,
    ) -> tuple[
        Bool[t.Tensor, "N"],
        Float[t.Tensor, "N 3"],
        Float[t.Tensor, "N 3 2"],
    ]:
        N = r_in.shape[0]
        normals = hit_record.normal  # Shape: [N, 3]

        reflected_direction = unit_vector(reflect(r_in[:, :, 1], normals))
        reflected_direction = reflected_direction + self.fuzz * random_unit_vector((N,), generator)

        # Fuzzed rays that end up below the surface are absorbed
        scatter_mask = (reflected_direction * normals).sum(dim=1) > 0  # Shape: [N]

        new_rays = make_rays(hit_record.point, reflected_direction)  # Shape: [N, 3, 2]
        attenuation = self.albedo.expand(N, 3)

        return scatter_mask, attenuation, new_rays


class Dielectric(Material):
    def __init__(self, refraction_index: float):
        if refraction_index <= 0:
            raise ValueError(f"refraction_index must be positive, got {refraction_index}")
        # Refractive index in vacuum or air, or the ratio of the material's index over the enclosing media
        self.refraction_index = float(refraction_index)

    def __repr__(self) -> str:
        return f"Dielectric(refraction_index={self.refraction_index})"

    @jaxtyped(typechecker=typechecker)
    def scatter(
        self,
        r_in: Float[t.Tensor, "N 3 2"],
        hit_record: HitRecord,
        generator: Optional[t.Generator] = None,
    ) -> tuple[
        Bool[t.Tensor, "N"],
        Float[t.Tensor, "N 3"],
        Float[t.Tensor, "N 3 2"],
    ]:
        N = r_in.shape[0]
        normals = hit_record.normal  # Shape: [N, 3]
        unit_direction = unit_vector(r_in[:, :, 1])  # Shape: [N, 3]

        # Glass absorbs nothing
        attenuation = t.ones(N, 3, dtype=dtype, device=device)

        refraction_ratio = t.where(
            hit_record.front_face.unsqueeze(1),
            t.full((N, 1), 1.0 / self.refraction_index, dtype=dtype, device=device),
            t.full((N, 1), self.refraction_index, dtype=dtype, device=device),
        )

        cos_theta = t.clamp((-unit_direction * normals).sum(dim=1, keepdim=True), max=1.0)
        sin_theta = t.sqrt(t.clamp(1.0 - cos_theta**2, min=0.0))

        cannot_refract = (refraction_ratio * sin_theta) > 1.0

        reflect_prob = reflectance(cos_theta, refraction_ratio)
        random_numbers = t.rand(N, 1, generator=generator, device=device, dtype=dtype)
        # Matched media have zero Fresnel reflectance
        fresnel_reflect = (reflect_prob > random_numbers) & (refraction_ratio != 1.0)
        should_reflect = cannot_refract | fresnel_reflect

        reflected_direction = reflect(unit_direction, normals)
        refracted_direction = refract(unit_direction, normals, refraction_ratio)
        direction = t.where(should_reflect, reflected_direction, refracted_direction)
        new_rays = make_rays(hit_record.point, direction)

        scatter_mask = t.ones(N, dtype=t.bool, device=device)

        return scatter_mask, attenuation, new_rays
