import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
import torch as t
import torch.nn.functional as F
from jaxtyping import Float, Int, jaxtyped
from tqdm import tqdm
from typeguard import typechecked as typechecker

from .config import DEFAULT_BATCH_SIZE, device, dtype, tensor
from .hittable import Hittable
from .integrator import ray_color
from .ray import make_rays
from .utils import degrees_to_radians, random_in_unit_disk, sample_square

logger = logging.getLogger(__name__)

VectorLike = Union[Float[t.Tensor, "3"], Sequence[float]]


class Camera:
    """Pinhole or thin-lens camera that turns pixels into primary rays and renders an image.

    The public attributes are the configuration. ``initialize`` derives the
    viewport from them; it runs once, either explicitly or at the start of the
    first ``render``.
    """

    def __init__(
        self,
        look_from: VectorLike = (0.0, 0.0, 0.0),
        look_at: VectorLike = (0.0, 0.0, -1.0),
        vup: VectorLike = (0.0, 1.0, 0.0),
        aspect_ratio: float = 1.0,
        image_width: int = 100,
        samples_per_pixel: int = 10,
        max_depth: int = 10,
        vfov: float = 90.0,  # vertical field of view angle
        defocus_angle: float = 0.0,  # variation angle of rays through each pixel
        focus_dist: float = 10.0,  # distance from look_from to the plane of perfect focus
        seed: Optional[int] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        workers: int = 1,
        progress: bool = True,
    ):
        self.look_from = look_from
        self.look_at = look_at
        self.vup = vup

        self.aspect_ratio = aspect_ratio
        self.image_width = image_width
        self.samples_per_pixel = samples_per_pixel
        self.max_depth = max_depth

        self.vfov = vfov
        self.defocus_angle = defocus_angle
        self.focus_dist = focus_dist

        self.seed = seed
        self.batch_size = batch_size
        self.workers = workers
        self.progress = progress

        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def _validate(self) -> None:
        if self.image_width <= 0:
            raise ValueError(f"image_width must be positive, got {self.image_width}")
        if self.aspect_ratio <= 0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.samples_per_pixel <= 0:
            raise ValueError(f"samples_per_pixel must be positive, got {self.samples_per_pixel}")
        if self.focus_dist <= 0:
            raise ValueError(f"focus_dist must be positive, got {self.focus_dist}")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers}")

    def initialize(self) -> None:
        self._validate()

        self.image_height: int = max(1, int(self.image_width / self.aspect_ratio))
        self.pixel_samples_scale: float = 1.0 / self.samples_per_pixel

        self.center: Float[t.Tensor, "3"] = tensor(self.look_from)

        # Compute viewport dimensions
        theta = degrees_to_radians(float(self.vfov))
        h_viewport = math.tan(theta / 2)
        self.viewport_height: float = 2.0 * h_viewport * self.focus_dist
        self.viewport_width: float = self.viewport_height * (self.image_width / self.image_height)

        # Calculate camera basis vectors
        self.w: Float[t.Tensor, "3"] = F.normalize(self.center - tensor(self.look_at), dim=-1)
        self.u: Float[t.Tensor, "3"] = F.normalize(t.linalg.cross(tensor(self.vup), self.w), dim=-1)
        self.v: Float[t.Tensor, "3"] = t.linalg.cross(self.w, self.u)

        # Vectors across the horizontal and down the vertical viewport edges
        viewport_u = self.viewport_width * self.u
        viewport_v = self.viewport_height * -self.v

        self.pixel_delta_u: Float[t.Tensor, "3"] = viewport_u / self.image_width
        self.pixel_delta_v: Float[t.Tensor, "3"] = viewport_v / self.image_height

        viewport_upper_left = self.center - self.focus_dist * self.w - viewport_u / 2 - viewport_v / 2
        self.pixel00_loc: Float[t.Tensor, "3"] = viewport_upper_left + 0.5 * (self.pixel_delta_u + self.pixel_delta_v)

        # Calculate the camera defocus disk basis vectors
        defocus_radius = self.focus_dist * math.tan(degrees_to_radians(self.defocus_angle / 2))
        self.defocus_disk_u: Float[t.Tensor, "3"] = self.u * defocus_radius
        self.defocus_disk_v: Float[t.Tensor, "3"] = self.v * defocus_radius

        self._initialized = True
        logger.debug(
            "Camera initialized: %dx%d, %d spp, max depth %d, u=%s v=%s w=%s",
            self.image_width,
            self.image_height,
            self.samples_per_pixel,
            self.max_depth,
            self.u.tolist(),
            self.v.tolist(),
            self.w.tolist(),
        )

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("Camera.initialize() must run before generating rays")

    def defocus_disk_sample(
        self, shape: Tuple[int, ...], generator: Optional[t.Generator] = None
    ) -> Float[t.Tensor, "... 3"]:
        """Random points on the camera defocus disk."""
        self._require_initialized()
        p = random_in_unit_disk(shape, generator)
        return self.center + p[..., 0:1] * self.defocus_disk_u + p[..., 1:2] * self.defocus_disk_v

    @jaxtyped(typechecker=typechecker)
    def get_rays(
        self,
        i: Int[t.Tensor, "*batch"],
        j: Int[t.Tensor, "*batch"],
        generator: Optional[t.Generator] = None,
    ) -> Float[t.Tensor, "*batch 3 2"]:
        """Camera rays from the defocus disk through random points around pixels ``(i, j)``."""
        self._require_initialized()
        shape = tuple(i.shape)

        offset = sample_square(shape, generator)
        pixel_sample = (
            self.pixel00_loc
            + (i.to(dtype) + offset[..., 0]).unsqueeze(-1) * self.pixel_delta_u
            + (j.to(dtype) + offset[..., 1]).unsqueeze(-1) * self.pixel_delta_v
        )

        if self.defocus_angle <= 0:
            ray_origin = self.center.expand(*shape, 3)
        else:
            ray_origin = self.defocus_disk_sample(shape, generator)

        return make_rays(ray_origin, pixel_sample - ray_origin)

    def get_ray(self, i: int, j: int, generator: Optional[t.Generator] = None) -> Float[t.Tensor, "3 2"]:
        rays = self.get_rays(
            t.tensor([i], dtype=t.long, device=device),
            t.tensor([j], dtype=t.long, device=device),
            generator,
        )
        return rays[0]

    def _tiles(self) -> List[Tuple[int, int]]:
        rays_per_row = self.image_width * self.samples_per_pixel
        rows = max(1, self.batch_size // rays_per_row)
        return [(start, min(start + rows, self.image_height)) for start in range(0, self.image_height, rows)]

    def _render_tile(
        self, world: Hittable, tile: Tuple[int, int], seed_seq: np.random.SeedSequence
    ) -> Float[t.Tensor, "rows w 3"]:
        start, stop = tile
        rows, w, sample = stop - start, self.image_width, self.samples_per_pixel

        # Independent stream per tile, so results do not depend on scheduling
        generator = t.Generator(device=device)
        generator.manual_seed(int(seed_seq.generate_state(1)[0]))

        j_indices = t.arange(start, stop, device=device).view(1, rows, 1).expand(sample, rows, w)
        i_indices = t.arange(w, device=device).view(1, 1, w).expand(sample, rows, w)

        pixel_rays = self.get_rays(i_indices, j_indices, generator)
        colors = ray_color(pixel_rays.reshape(-1, 3, 2), world, self.max_depth, generator)
        colors = colors.view(sample, rows, w, 3)

        # Average over antialiasing samples
        return (colors.sum(dim=0) * self.pixel_samples_scale).clamp(0.0, 1.0)

    def render(self, world: Hittable) -> Float[t.Tensor, "h w 3"]:
        """Renders ``world`` into a ``[h, w, 3]`` tensor of linear colors in [0, 1], rows top to bottom."""
        if not self._initialized:
            self.initialize()

        h, w = self.image_height, self.image_width
        tiles = self._tiles()
        seeds = np.random.SeedSequence(self.seed).spawn(len(tiles))
        logger.info(
            "Rendering %dx%d image at %d spp, max depth %d, on %s", w, h, self.samples_per_pixel, self.max_depth, device
        )
        logger.debug("Rendering %d tiles of up to %d rows with %d worker(s)", len(tiles), tiles[0][1], self.workers)

        started = time.perf_counter()
        img = t.zeros((h, w, 3), dtype=dtype, device=device)

        def render_tile(args: Tuple[Tuple[int, int], np.random.SeedSequence]) -> Float[t.Tensor, "rows w 3"]:
            return self._render_tile(world, *args)

        bar = tqdm(total=h, desc="Scanlines", unit="row", disable=not self.progress)
        try:
            if self.workers > 1:
                with ThreadPoolExecutor(max_workers=self.workers) as executor:
                    # map yields in submission order, so rows land in raster order
                    for (start, stop), tile_colors in zip(tiles, executor.map(render_tile, zip(tiles, seeds))):
                        img[start:stop] = tile_colors
                        bar.update(stop - start)
            else:
                for tile, seed_seq in zip(tiles, seeds):
                    start, stop = tile
                    img[start:stop] = self._render_tile(world, tile, seed_seq)
                    bar.update(stop - start)
        finally:
            bar.close()

        logger.info("Rendered %dx%d image in %.2fs", w, h, time.perf_counter() - started)
        return img
