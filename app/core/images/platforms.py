from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .reference import image_tags

DEFAULT_PLATFORMS: List[str] = ["linux/amd64", "linux/arm64/v8"]
SUPPORTED_PLATFORMS = frozenset(DEFAULT_PLATFORMS)

_PLATFORM = re.compile(r"^[a-z0-9]+/[a-z0-9_]+(?:/[a-z0-9]+)?$")


def validate_platforms(platforms: Optional[Sequence[str]]) -> List[str]:
    if not platforms:
        return list(DEFAULT_PLATFORMS)

    out: List[str] = []
    for p in platforms:
        v = (p or "").strip().lower()
        if not _PLATFORM.match(v):
            raise ValueError(f"invalid platform {p!r}; expected os/arch[/variant]")
        if v not in SUPPORTED_PLATFORMS:
            raise ValueError(f"unsupported platform {v}; supported: {sorted(SUPPORTED_PLATFORMS)}")
        if v not in out:
            out.append(v)
    return out


def buildx_commands(
    image: str,
    commit_sha: str,
    platforms: Optional[Sequence[str]] = None,
    *,
    context: str = ".",
    builder: str = "multiarch",
) -> List[List[str]]:
    """Commands for a multi-arch build that pushes both tags in one step."""
    plats = validate_platforms(platforms)
    tags = image_tags(image, commit_sha)

    build = ["docker", "buildx", "build", "--platform", ",".join(plats)]
    for t in tags:
        build += ["-t", t]
    build += ["--push", context]

    return [
        ["docker", "buildx", "create", "--use", "--name", builder],
        ["docker", "buildx", "inspect", "--bootstrap"],
        build,
    ]


def _text(p: Dict[str, Any], key: str) -> str:
    v = p.get(key)
    return v.strip() if isinstance(v, str) else ""


def _platform_string(p: Any) -> Optional[str]:
    if not isinstance(p, dict):
        return None
    os_ = _text(p, "os")
    arch = _text(p, "architecture")
    if not os_ or not arch:
        return None
    variant = _text(p, "variant")
    return f"{os_}/{arch}/{variant}" if variant else f"{os_}/{arch}"


@dataclass
class ManifestCheck:
    expected: List[str]
    found: List[str]
    missing: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": self.ok, "expected": self.expected, "found": self.found, "missing": self.missing}


def manifest_platforms(manifest: Any) -> List[str]:
    """Platforms listed by `docker manifest inspect` output (JSON text or parsed)."""
    data = json.loads(manifest) if isinstance(manifest, (str, bytes)) else manifest
    if not isinstance(data, dict):
        raise ValueError("manifest must be a JSON object")

    entries = data.get("manifests")
    if not isinstance(entries, list):
        # Single-arch image manifest: no platform list to inspect.
        return []

    found: List[str] = []
    for e in entries:
        if not isinstance(e, dict):
            continue
        plat = _platform_string(e.get("platform"))
        # buildx attestation manifests show up as unknown/unknown
        if plat and "unknown" not in plat and plat not in found:
            found.append(plat)
    return found


def check_manifest(manifest: Any, expected: Optional[Sequence[str]] = None) -> ManifestCheck:
    exp = validate_platforms(expected)
    found = manifest_platforms(manifest)
    # linux/arm64 without a variant is reported by some registries for arm64/v8
    normalized = set(found) | {f"{p}/v8" for p in found if p == "linux/arm64"}
    missing = [p for p in exp if p not in normalized]
    return ManifestCheck(expected=exp, found=found, missing=missing)
