from .reference import ImageReference, ImageReferenceError, image_tags, parse_image
from .platforms import DEFAULT_PLATFORMS, buildx_commands, check_manifest
from .commands import local_commands

__all__ = [
    "DEFAULT_PLATFORMS",
    "ImageReference",
    "ImageReferenceError",
    "buildx_commands",
    "check_manifest",
    "image_tags",
    "local_commands",
    "parse_image",
]
