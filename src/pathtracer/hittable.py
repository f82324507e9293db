from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .materials import Material

import math

import torch as t
from jaxtyping import Bool, Float, Int, jaxtyped
from typeguard import typechecked as typechecker

from .config import device, dtype
from .interval import Interval


class HitRecord:
    """Class to register ray-object intersections for a batch of rays.

    ``material_id`` indexes into ``materials``; rows without a hit carry
    ``t = inf`` and ``material_id = -1``.
    """

    def __init__(
        self,
        hit: Bool[t.Tensor, "N"],
        point: Float[t.Tensor, "N 3"],
        normal: Float[t.Tensor, "N 3"],
        t: Float[t.Tensor, "N"],
        front_face: Bool[t.Tensor, "N"],
        material_id: Int[t.Tensor, "N"],
        materials: Optional[List["Material"]] = None,
    ):
        self.hit = hit
        self.point = point
        self.normal = normal
        self.t = t
        self.front_face = front_face
        self.material_id = material_id
        self.materials: List["Material"] = list(materials or [])

    def __len__(self) -> int:
        return self.hit.shape[0]

    @jaxtyped(typechecker=typechecker)
    def set_face_normal(
        self,
        ray_direction: Float[t.Tensor, "N 3"],
        outward_normal: Float[t.Tensor, "N 3"],
    ) -> None:
        """Determines whether the hit is from the outside or inside.

        ``outward_normal`` is assumed to have unit length.
        """
        self.front_face = (ray_direction * outward_normal).sum(dim=-1) < 0
        self.normal = t.where(self.front_face.unsqueeze(-1), outward_normal, -outward_normal)

    @staticmethod
    def empty(n: int) -> "HitRecord":
        """Creates a HitRecord in which no ray hit anything."""
        hit = t.zeros(n, dtype=t.bool, device=device)
        point = t.zeros((n, 3), dtype=dtype, device=device)
        normal = t.zeros((n, 3), dtype=dtype, device=device)
        t_values = t.full((n,), math.inf, dtype=dtype, device=device)
        front_face = t.zeros(n, dtype=t.bool, device=device)
        material_id = t.full((n,), -1, dtype=t.long, device=device)
        return HitRecord(hit, point, normal, t_values, front_face, material_id)

    def select(self, indices: Int[t.Tensor, "M"]) -> "HitRecord":
        """Returns the sub-record for the given ray indices; the material table is shared."""
        return HitRecord(
            hit=self.hit[indices],
            point=self.point[indices],
            normal=self.normal[indices],
            t=self.t[indices],
            front_face=self.front_face[indices],
            material_id=self.material_id[indices],
            materials=self.materials,
        )

    def merge(self, other: "HitRecord", mask: Bool[t.Tensor, "N"]) -> None:
        """Overwrites the rows selected by ``mask`` with ``other``'s rows."""
        offset = len(self.materials)
        self.materials.extend(other.materials)

        self.hit = self.hit | mask
        self.point = t.where(mask.unsqueeze(-1), other.point, self.point)
        self.normal = t.where(mask.unsqueeze(-1), other.normal, self.normal)
        self.t = t.where(mask, other.t, self.t)
        self.front_face = t.where(mask, other.front_face, self.front_face)
        self.material_id = t.where(mask, other.material_id + offset, self.material_id)


class Hittable(ABC):
    """Abstract class for hittable objects."""

    @abstractmethod
    def hit(
        self,
        pixel_rays: Float[t.Tensor, "N 3 2"],
        ray_t: Interval,
    ) -> HitRecord:
        pass


class HittableList(Hittable):
    """Ordered list of hittable objects, reporting the closest hit per ray."""

    def __init__(self, objects: Optional[List[Hittable]] = None):
        self.objects: List[Hittable] = list(objects or [])

    def add(self, obj: Hittable) -> None:
        self.objects.append(obj)

    def clear(self) -> None:
        self.objects.clear()

    def __len__(self) -> int:
        return len(self.objects)

    @jaxtyped(typechecker=typechecker)
    def hit(
        self,
        pixel_rays: Float[t.Tensor, "N 3 2"],
        ray_t: Interval,
    ) -> HitRecord:
        N: int = pixel_rays.shape[0]
        record = HitRecord.empty(N)
        if isinstance(ray_t.max, t.Tensor):
            closest_so_far = ray_t.max.clone()
        else:
            closest_so_far = t.full((N,), float(ray_t.max), dtype=dtype, device=device)

        for obj in self.objects:
            # Narrowing the window means any reported hit is strictly closer than all previous ones
            obj_record = obj.hit(pixel_rays, Interval(ray_t.min, closest_so_far))
            closer_mask = obj_record.hit
            closest_so_far = t.where(closer_mask, obj_record.t, closest_so_far)
            record.merge(obj_record, closer_mask)

        return record
