import math
from typing import List, Sequence, Union

import torch as t
from jaxtyping import Bool, Float, Int, jaxtyped
from typeguard import typechecked as typechecker

from .config import device, dtype, tensor
from .hittable import HitRecord, Hittable
from .interval import Interval
from .materials import Material
from .ray import ray_at


class Sphere(Hittable):
    def __init__(self, center: Union[Float[t.Tensor, "3"], Sequence[float]], radius: float, material: Material):
        self.center: Float[t.Tensor, "3"] = tensor(center)
        self.radius: float = max(float(radius), 0.0)
        self.material: Material = material

    def __repr__(self) -> str:
        return f"Sphere(center={self.center.tolist()}, radius={self.radius}, material={self.material!r})"

    @jaxtyped(typechecker=typechecker)
    def hit(
        self,
        pixel_rays: Float[t.Tensor, "N 3 2"],
        ray_t: Interval,
    ) -> HitRecord:
        N: int = pixel_rays.shape[0]
        if self.radius == 0.0:
            # A point has no surface and no defined normal
            return HitRecord.empty(N)

        origin = pixel_rays[:, :, 0]
        direction = pixel_rays[:, :, 1]

        oc = self.center - origin

        # Half-angle form of the quadratic, b = -2h
        a = (direction**2).sum(dim=1)
        h = (direction * oc).sum(dim=1)
        c = (oc**2).sum(dim=1) - self.radius**2

        discriminant = h * h - a * c
        sqrtd = t.sqrt(t.clamp(discriminant, min=0.0))

        # Find the nearest root that lies in the acceptable range
        near_root = (h - sqrtd) / a
        far_root = (h + sqrtd) / a
        near_valid = ray_t.surrounds(near_root)
        far_valid = ray_t.surrounds(far_root)
        root = t.where(near_valid, near_root, far_root)

        sphere_hit: Bool[t.Tensor, "N"] = (discriminant >= 0) & (near_valid | far_valid)
        root = t.where(sphere_hit, root, t.full_like(root, math.inf))

        hit_points = ray_at(pixel_rays, t.where(sphere_hit, root, 0.0))
        outward_normal = (hit_points - self.center) / self.radius

        record = HitRecord(
            hit=sphere_hit,
            point=hit_points,
            normal=outward_normal,
            t=root,
            front_face=t.zeros(N, dtype=t.bool, device=device),
            material_id=t.where(sphere_hit, t.zeros(N, dtype=t.long, device=device), -1),
            materials=[self.material],
        )
        record.set_face_normal(direction, outward_normal)
        return record


class SphereList(Hittable):
    """Arena of sphere records intersected all at once.

    Equivalent to a ``HittableList`` of the same spheres in the same order,
    including tie breaking (the earliest sphere wins equal ``t``).
    """

    def __init__(
        self,
        centers: Float[t.Tensor, "M 3"],
        radii: Float[t.Tensor, "M"],
        material_ids: Int[t.Tensor, "M"],
        materials: List[Material],
    ):
        self.centers = centers.to(device=device, dtype=dtype)
        self.radii = t.clamp(radii.to(device=device, dtype=dtype), min=0.0)
        self.material_ids = material_ids.to(device=device, dtype=t.long)
        self.materials = list(materials)

    @classmethod
    def from_spheres(cls, spheres: Sequence[Sphere]) -> "SphereList":
        materials: List[Material] = []
        ids = []
        for sphere in spheres:
            # Shared materials get a single table entry
            for idx, material in enumerate(materials):
                if material is sphere.material:
                    break
            else:
                idx = len(materials)
                materials.append(sphere.material)
            ids.append(idx)

        if spheres:
            centers = t.stack([sphere.center for sphere in spheres])
        else:
            centers = t.zeros((0, 3), dtype=dtype, device=device)
        radii = tensor([sphere.radius for sphere in spheres])
        material_ids = t.tensor(ids, dtype=t.long, device=device)
        return cls(centers, radii, material_ids, materials)

    def __len__(self) -> int:
        return self.centers.shape[0]

    @jaxtyped(typechecker=typechecker)
    def hit(
        self,
        pixel_rays: Float[t.Tensor, "N 3 2"],
        ray_t: Interval,
    ) -> HitRecord:
        N = pixel_rays.shape[0]
        M = self.centers.shape[0]
        if M == 0:
            return HitRecord.empty(N)

        rays_origin = pixel_rays[:, :, 0]  # [N, 3]
        rays_direction = pixel_rays[:, :, 1]  # [N, 3]

        oc = self.centers.unsqueeze(0) - rays_origin.unsqueeze(1)  # [N, M, 3]

        a = (rays_direction**2).sum(dim=1, keepdim=True)  # [N, 1]
        h = (rays_direction.unsqueeze(1) * oc).sum(dim=2)  # [N, M]
        c = (oc**2).sum(dim=2) - self.radii**2  # [N, M]

        discriminant = h * h - a * c  # [N, M]
        sqrtd = t.sqrt(t.clamp(discriminant, min=0.0))

        bounds = ray_t.unsqueeze(-1)
        near_root = (h - sqrtd) / a
        far_root = (h + sqrtd) / a
        near_valid = bounds.surrounds(near_root)
        far_valid = bounds.surrounds(far_root)

        candidate_hit = (discriminant >= 0) & (near_valid | far_valid) & (self.radii > 0)  # [N, M]
        t_hit = t.where(near_valid, near_root, far_root)
        t_hit = t.where(candidate_hit, t_hit, t.full_like(t_hit, math.inf))

        # Find the closest hit for each ray
        t_hit_min, sphere_indices = t.min(t_hit, dim=1)  # [N]
        sphere_hit = candidate_hit.any(dim=1)  # [N]

        safe_t = t.where(sphere_hit, t_hit_min, 0.0)
        hit_points = ray_at(pixel_rays, safe_t)  # [N, 3]
        radii_hit = t.where(sphere_hit, self.radii[sphere_indices], 1.0)
        outward_normal = (hit_points - self.centers[sphere_indices]) / radii_hit.unsqueeze(-1)  # [N, 3]

        record = HitRecord(
            hit=sphere_hit,
            point=hit_points,
            normal=outward_normal,
            t=t.where(sphere_hit, t_hit_min, t.full_like(t_hit_min, math.inf)),
            front_face=t.zeros(N, dtype=t.bool, device=device),
            material_id=t.where(sphere_hit, self.material_ids[sphere_indices], -1),
            materials=self.materials,
        )
        record.set_face_normal(rays_direction, outward_normal)
        return record
