"""Ready-made worlds paired with the camera settings they are meant to be viewed with."""

import random
from typing import Optional, Tuple

from .camera import Camera
from .hittable import HittableList
from .materials import Dielectric, Lambertian, Metal
from .sphere import Sphere, SphereList


def two_sphere_scene() -> Tuple[HittableList, Camera]:
    """Diffuse sphere resting on a large diffuse ground sphere."""
    world = HittableList()
    world.add(Sphere((0.0, 0.0, -1.0), 0.5, Lambertian((0.5, 0.5, 0.5))))
    world.add(Sphere((0.0, -100.5, -1.0), 100.0, Lambertian((0.5, 0.5, 0.5))))

    camera = Camera(aspect_ratio=16.0 / 9.0, image_width=400, samples_per_pixel=100, max_depth=50)
    return world, camera


def quick_scene() -> Tuple[HittableList, Camera]:
    world = HittableList()

    material_ground = Lambertian((0.8, 0.8, 0.0))
    material_center = Lambertian((0.1, 0.2, 0.5))
    material_left = Metal((0.8, 0.8, 0.8), fuzz=0.3)
    material_right = Metal((0.8, 0.6, 0.2), fuzz=1.0)

    world.add(Sphere((0.0, -100.5, -1.0), 100.0, material_ground))
    world.add(Sphere((0.0, 0.0, -1.2), 0.5, material_center))
    world.add(Sphere((-1.0, 0.0, -1.0), 0.5, material_left))
    world.add(Sphere((1.0, 0.0, -1.0), 0.5, material_right))

    camera = Camera(aspect_ratio=16.0 / 9.0, image_width=400, samples_per_pixel=100, max_depth=50)
    return world, camera


def final_scene(seed: Optional[int] = None) -> Tuple[SphereList, Camera]:
    """A field of small random spheres around three large ones: glass, diffuse and metal."""
    rng = random.Random(seed)

    def random_color(lo: float = 0.0, hi: float = 1.0) -> Tuple[float, float, float]:
        return (rng.uniform(lo, hi), rng.uniform(lo, hi), rng.uniform(lo, hi))

    spheres = [Sphere((0.0, -1000.0, 0.0), 1000.0, Lambertian((0.5, 0.5, 0.5)))]

    for a in range(-11, 11):
        for b in range(-11, 11):
            choose_mat = rng.random()
            center = (a + 0.9 * rng.random(), 0.2, b + 0.9 * rng.random())
            if (center[0] - 4) ** 2 + (center[1] - 0.2) ** 2 + center[2] ** 2 <= 0.9**2:
                continue

            if choose_mat < 0.8:
                # Diffuse
                albedo = tuple(x * y for x, y in zip(random_color(), random_color()))
                material = Lambertian(albedo)
            elif choose_mat < 0.95:
                # Metal
                material = Metal(random_color(0.5, 1.0), fuzz=rng.uniform(0, 0.5))
            else:
                # Glass
                material = Dielectric(1.5)
            spheres.append(Sphere(center, 0.2, material))

    spheres.append(Sphere((0.0, 1.0, 0.0), 1.0, Dielectric(1.5)))
    spheres.append(Sphere((-4.0, 1.0, 0.0), 1.0, Lambertian((0.4, 0.2, 0.1))))
    spheres.append(Sphere((4.0, 1.0, 0.0), 1.0, Metal((0.7, 0.6, 0.5), fuzz=0.0)))

    camera = Camera(
        aspect_ratio=16.0 / 9.0,
        image_width=1200,
        samples_per_pixel=500,
        max_depth=50,
        vfov=20.0,
        look_from=(13.0, 2.0, 3.0),
        look_at=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        defocus_angle=0.6,
        focus_dist=10.0,
        seed=seed,
    )
    return SphereList.from_spheres(spheres), camera
