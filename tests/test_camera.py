import hashlib
import logging
import math

import numpy as np
import pytest
import torch as t

from pathtracer.camera import Camera
from pathtracer.color import to_bytes
from pathtracer.config import device, tensor
from pathtracer.hittable import HittableList
from pathtracer.scenes import final_scene, quick_scene, two_sphere_scene


# sha256 of the quantized two-sphere render from regression_camera() on CPU
REFERENCE_DIGEST = "c91009904ac5b048c6e03f35e3539cd22eccdf90d8e9e07329d3eea9a2dd02e8"


def regression_camera(**overrides):
    settings = dict(
        aspect_ratio=16.0 / 9.0, image_width=48, samples_per_pixel=1, max_depth=10, seed=2024, progress=False
    )
    settings.update(overrides)
    return Camera(**settings)


class TestInitialize:
    @pytest.mark.parametrize(
        "width, aspect, height", [(400, 16.0 / 9.0, 225), (100, 1.0, 100), (1, 16.0 / 9.0, 1), (10, 0.5, 20)]
    )
    def test_image_height(self, width, aspect, height):
        camera = Camera(image_width=width, aspect_ratio=aspect)
        camera.initialize()
        assert camera.image_height == height

    def test_basis_is_orthonormal(self):
        camera = Camera(look_from=(13.0, 2.0, 3.0), look_at=(0.0, 0.0, 0.0), vup=(0.0, 1.0, 0.0))
        camera.initialize()
        basis = t.stack([camera.u, camera.v, camera.w])
        assert t.allclose(basis @ basis.T, t.eye(3, dtype=basis.dtype, device=device), atol=1e-12)
        assert t.allclose(camera.w, tensor([13.0, 2.0, 3.0]) / math.sqrt(182.0))

    def test_samples_scale(self):
        camera = Camera(samples_per_pixel=8)
        camera.initialize()
        assert camera.pixel_samples_scale == 0.125

    @pytest.mark.parametrize(
        "field, value",
        [("samples_per_pixel", 0), ("image_width", 0), ("aspect_ratio", -1.0), ("focus_dist", 0.0), ("workers", 0)],
    )
    def test_rejects_invalid_configuration(self, field, value):
        camera = Camera()
        setattr(camera, field, value)
        with pytest.raises(ValueError):
            camera.initialize()

    def test_rays_require_initialize(self):
        with pytest.raises(RuntimeError):
            Camera().get_ray(0, 0)


class TestGetRays:
    def test_pinhole_rays_start_at_center_and_stay_in_pixel(self, generator):
        camera = Camera(image_width=40, look_from=(1.0, 2.0, 3.0), look_at=(1.0, 2.0, 0.0))
        camera.initialize()
        j, i = t.meshgrid(t.arange(40, device=device), t.arange(40, device=device), indexing="ij")

        rays = camera.get_rays(i, j, generator)

        assert t.equal(rays[..., 0], tensor([1.0, 2.0, 3.0]).expand(40, 40, 3))
        sample = rays[..., 0] + rays[..., 1]
        pixel_center = (
            camera.pixel00_loc
            + i.unsqueeze(-1).to(sample.dtype) * camera.pixel_delta_u
            + j.unsqueeze(-1).to(sample.dtype) * camera.pixel_delta_v
        )
        offset = sample - pixel_center
        du, dv = camera.pixel_delta_u.norm(), camera.pixel_delta_v.norm()
        assert ((offset @ camera.u).abs() <= 0.5 * du + 1e-12).all()
        assert ((offset @ camera.v).abs() <= 0.5 * dv + 1e-12).all()
        assert t.allclose(offset @ camera.w, t.zeros_like(offset[..., 0]), atol=1e-12)

    def test_first_pixel_is_top_left(self):
        camera = Camera(image_width=10)
        camera.initialize()
        # Looking down -z with +y up: pixel (0, 0) is up and to the left
        assert camera.pixel00_loc[0] < 0
        assert camera.pixel00_loc[1] > 0

    def test_defocus_origins_lie_on_lens_disk(self, generator):
        camera = Camera(defocus_angle=10.0, focus_dist=3.4)
        camera.initialize()
        i = t.zeros(2000, dtype=t.long, device=device)

        rays = camera.get_rays(i, i, generator)

        offset = rays[:, :, 0] - camera.center
        radius = 3.4 * math.tan(math.radians(5.0))
        assert t.allclose(offset @ camera.w, t.zeros(2000, dtype=offset.dtype, device=device), atol=1e-12)
        assert (offset.norm(dim=-1) <= radius + 1e-12).all()
        assert offset.norm(dim=-1).max() > 0.5 * radius

    def test_get_ray_single_pixel(self, generator):
        camera = Camera()
        camera.initialize()
        assert camera.get_ray(3, 4, generator).shape == (3, 2)


class TestRender:
    def test_empty_world_renders_sky(self):
        camera = regression_camera()
        img = camera.render(HittableList())

        assert img.shape == (27, 48, 3)
        assert ((img >= 0) & (img <= 1)).all()
        # Rows run top to bottom, so the top row is the bluest
        assert img[0, :, 0].mean() < img[-1, :, 0].mean()

    def test_render_logs_start_and_end(self, caplog):
        with caplog.at_level(logging.INFO, logger="pathtracer.camera"):
            regression_camera().render(HittableList())

        messages = [record.getMessage() for record in caplog.records if record.levelno == logging.INFO]
        assert messages[0].startswith("Rendering 48x27 image at 1 spp, max depth 10")
        assert messages[-1].startswith("Rendered 48x27 image in")

    def test_seeded_render_is_bit_identical(self):
        world, _ = two_sphere_scene()

        first = to_bytes(regression_camera().render(world))
        second = to_bytes(regression_camera().render(world))

        assert np.array_equal(first, second)

    @pytest.mark.skipif(device.type != "cpu", reason="reference digest was recorded on CPU")
    def test_seeded_render_matches_reference(self):
        world, _ = two_sphere_scene()

        image = to_bytes(regression_camera().render(world))

        assert hashlib.sha256(image.tobytes()).hexdigest() == REFERENCE_DIGEST

    def test_worker_count_does_not_change_image(self):
        world, _ = two_sphere_scene()

        sequential = regression_camera(batch_size=200).render(world)
        parallel = regression_camera(batch_size=200, workers=3).render(world)

        assert t.equal(sequential, parallel)

    def test_different_seed_changes_image(self):
        world, _ = two_sphere_scene()

        first = regression_camera(seed=1).render(world)
        second = regression_camera(seed=2).render(world)

        assert not t.equal(first, second)

    def test_render_initializes_once(self):
        world, _ = two_sphere_scene()
        camera = regression_camera()
        camera.initialize()
        pixel00 = camera.pixel00_loc

        camera.render(world)

        assert camera.initialized
        assert camera.pixel00_loc is pixel00


def test_scenes_build():
    for world, camera in (quick_scene(), two_sphere_scene(), final_scene(seed=0)):
        assert len(world) > 0
        camera.initialize()

    world, _ = final_scene(seed=0)
    again, _ = final_scene(seed=0)
    assert t.equal(world.centers, again.centers)
