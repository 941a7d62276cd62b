from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List

DEFAULT_REGISTRY = "docker.io"
DEFAULT_NAMESPACE = "library"
LATEST_TAG = "latest"

_COMPONENT = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$")
_TAG = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")
_SHA = re.compile(r"^[0-9a-f]{7,40}$")


class ImageReferenceError(ValueError):
    pass


@dataclass(frozen=True)
class ImageReference:
    registry: str
    namespace: str
    name: str
    # Form the caller supplied (kept as-is so tags read the same as DOCKER_IMAGE).
    original: str

    @property
    def repository(self) -> str:
        return f"{self.namespace}/{self.name}"

    @property
    def canonical(self) -> str:
        return f"{self.registry}/{self.repository}"

    def with_tag(self, tag: str) -> str:
        if not _TAG.match(tag or ""):
            raise ImageReferenceError(f"invalid tag: {tag!r}")
        return f"{self.original}:{tag}"


def _looks_like_registry(part: str) -> bool:
    return "." in part or ":" in part or part == "localhost"


def parse_image(value: str) -> ImageReference:
    """Parse a repository reference such as ``acme/app`` or ``registry.example.com/team/app``.

    Tags and digests are rejected: the pipeline adds its own tags.
    """
    raw = (value or "").strip()
    if not raw:
        raise ImageReferenceError("image reference is empty")
    if "@" in raw:
        raise ImageReferenceError(f"image reference must not include a digest: {raw!r}")

    parts = raw.split("/")
    registry = DEFAULT_REGISTRY
    if len(parts) > 1 and _looks_like_registry(parts[0]):
        registry = parts[0]
        parts = parts[1:]

    if ":" in parts[-1]:
        raise ImageReferenceError(f"image reference must not include a tag: {raw!r}")

    for comp in parts:
        if not _COMPONENT.match(comp):
            raise ImageReferenceError(f"invalid image name component {comp!r} in {raw!r}")

    if len(parts) == 1:
        namespace, name = DEFAULT_NAMESPACE, parts[0]
    else:
        namespace, name = "/".join(parts[:-1]), parts[-1]

    return ImageReference(registry=registry, namespace=namespace, name=name, original=raw)


def normalize_commit_sha(sha: str) -> str:
    s = (sha or "").strip().lower()
    if not _SHA.match(s):
        raise ValueError(f"commit sha must be 7-40 hex characters, got {sha!r}")
    return s


def image_tags(image: str, commit_sha: str) -> List[str]:
    """The two tags every successful pipeline pushes: commit SHA first, then latest."""
    ref = parse_image(image)
    sha = normalize_commit_sha(commit_sha)
    return [ref.with_tag(sha), ref.with_tag(LATEST_TAG)]
