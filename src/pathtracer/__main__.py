import logging

from .color import save_image
from .config import device
from .scenes import quick_scene

logger = logging.getLogger("pathtracer")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    logger.info("Using device: %s", device)

    world, camera = quick_scene()
    image = camera.render(world)
    save_image(image, "image.ppm")


if __name__ == "__main__":
    main()
