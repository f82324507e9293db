from .camera import Camera
from .color import linear_to_gamma, save_image, tensor_to_image, to_bytes, write_ppm
from .hittable import HitRecord, Hittable, HittableList
from .integrator import background_color, ray_color
from .interval import Interval
from .materials import Dielectric, Lambertian, Material, Metal
from .sphere import Sphere, SphereList

__version__ = "0.1.0"

__all__ = [
    "Camera",
    "Dielectric",
    "HitRecord",
    "Hittable",
    "HittableList",
    "Interval",
    "Lambertian",
    "Material",
    "Metal",
    "Sphere",
    "SphereList",
    "background_color",
    "linear_to_gamma",
    "ray_color",
    "save_image",
    "tensor_to_image",
    "to_bytes",
    "write_ppm",
]
