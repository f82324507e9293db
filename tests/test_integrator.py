import pytest
import torch as t

from pathtracer.config import device, dtype, tensor
from pathtracer.hittable import HittableList
from pathtracer.integrator import background_color, ray_color
from pathtracer.materials import Dielectric, Lambertian, Metal
from pathtracer.ray import make_rays
from pathtracer.sphere import Sphere, SphereList


def random_rays(generator, n):
    origins = t.randn(n, 3, generator=generator, device=device, dtype=dtype)
    directions = t.randn(n, 3, generator=generator, device=device, dtype=dtype)
    return make_rays(origins, directions)


def test_background_gradient_endpoints():
    colors = background_color(tensor([[0.0, 5.0, 0.0], [0.0, -2.0, 0.0], [1.0, 0.0, 0.0]]))
    assert t.allclose(colors[0], tensor([0.5, 0.7, 1.0]))
    assert t.allclose(colors[1], tensor([1.0, 1.0, 1.0]))
    assert t.allclose(colors[2], tensor([0.75, 0.85, 1.0]))


@pytest.mark.parametrize("depth", [1, 2, 50])
def test_empty_scene_returns_background(generator, depth):
    rays = random_rays(generator, 256)
    colors = ray_color(rays, HittableList(), depth, generator)
    # Escaping rays are shaded from a contiguous copy of their directions
    assert t.equal(colors, background_color(rays[:, :, 1].contiguous()))


@pytest.mark.parametrize("world", [HittableList(), HittableList([Sphere((0.0, 0.0, 0.0), 10.0, Lambertian((1.0, 1.0, 1.0)))])])
def test_zero_depth_is_black(generator, world):
    colors = ray_color(random_rays(generator, 64), world, 0, generator)
    assert t.equal(colors, t.zeros(64, 3, dtype=dtype, device=device))


def test_single_bounce_budget_leaves_hits_black(generator):
    world = HittableList([Sphere((0.0, 0.0, -2.0), 1.0, Lambertian((0.5, 0.5, 0.5)))])
    rays = make_rays(tensor([[0.0, 0.0, 0.0], [0.0, 0.0, 0.0]]), tensor([[0.0, 0.0, -1.0], [0.0, 1.0, 0.0]]))

    colors = ray_color(rays, world, 1, generator)

    assert colors[0].tolist() == [0.0, 0.0, 0.0]
    assert t.allclose(colors[1], tensor([0.5, 0.7, 1.0]))


def test_closed_mirror_loses_all_energy(generator):
    # A perfect mirror seen from inside never lets a ray escape
    world = HittableList([Sphere((0.0, 0.0, 0.0), 5.0, Metal((1.0, 1.0, 1.0), fuzz=0.0))])
    origins = (t.rand(128, 3, generator=generator, device=device, dtype=dtype) - 0.5) * 4.0
    directions = t.randn(128, 3, generator=generator, device=device, dtype=dtype)

    colors = ray_color(make_rays(origins, directions), world, 20, generator)
    assert t.equal(colors, t.zeros(128, 3, dtype=dtype, device=device))


def test_matched_glass_is_invisible(generator):
    world = SphereList.from_spheres([Sphere((0.0, 0.0, -3.0), 1.0, Dielectric(1.0))])
    directions = tensor([[0.0, 0.0, -1.0], [0.1, 0.2, -1.0], [-0.3, 0.1, -1.0]])
    rays = make_rays(t.zeros(3, 3, dtype=dtype, device=device), directions)

    colors = ray_color(rays, world, 10, generator)

    assert t.allclose(colors, background_color(directions), atol=1e-9)


def test_lambertian_attenuates_sky(generator):
    # Floor half-space stand-in: huge sphere below, everything bounces up into the sky at most once
    world = HittableList([Sphere((0.0, -1000.0, 0.0), 999.0, Lambertian((0.5, 0.5, 0.5)))])
    rays = make_rays(t.zeros(64, 3, dtype=dtype, device=device), tensor([[0.0, -1.0, 0.0]] * 64))

    colors = ray_color(rays, world, 10, generator)

    assert (colors > 0).all()
    assert (colors <= 0.5 + 1e-12).all()
