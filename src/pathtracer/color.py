import logging
from pathlib import Path
from typing import TextIO, Union

import numpy as np
import torch as t
from jaxtyping import Float, UInt8, jaxtyped
from PIL import Image
from typeguard import typechecked as typechecker

from .interval import Interval

logger = logging.getLogger(__name__)

INTENSITY = Interval(0.000, 0.999)


@jaxtyped(typechecker=typechecker)
def linear_to_gamma(linear_component: Float[t.Tensor, "*shape"]) -> Float[t.Tensor, "*shape"]:
    """Gamma 2 transform; negative inputs map to 0."""
    return t.sqrt(t.clamp(linear_component, min=0.0))


@jaxtyped(typechecker=typechecker)
def to_bytes(img: Float[t.Tensor, "h w 3"]) -> UInt8[np.ndarray, "h w 3"]:
    """Quantizes linear colors to 8 bits: gamma, clamp to [0, 0.999], then truncate ``256 * x``."""
    scaled = 256 * INTENSITY.clamp(linear_to_gamma(img))
    return scaled.cpu().numpy().astype(np.uint8)


@jaxtyped(typechecker=typechecker)
def tensor_to_image(img: Float[t.Tensor, "h w 3"]) -> Image.Image:
    return Image.fromarray(to_bytes(img))


def write_ppm(img: Float[t.Tensor, "h w 3"], out: TextIO) -> None:
    """Writes a plain-text (P3) portable pixmap, pixels in raster order."""
    data = to_bytes(img)
    height, width, _ = data.shape
    out.write(f"P3\n{width} {height}\n255\n")
    for row in data:
        out.writelines(f"{r} {g} {b}\n" for r, g, b in row.tolist())


def save_image(img: Float[t.Tensor, "h w 3"], path: Union[str, Path]) -> Path:
    """Saves as PPM for ``.ppm`` paths, otherwise lets PIL pick the format from the suffix."""
    path = Path(path)
    if path.suffix.lower() == ".ppm":
        with path.open("w", encoding="ascii") as out:
            write_ppm(img, out)
    else:
        tensor_to_image(img).save(path)
    logger.info("Wrote %s", path)
    return path
