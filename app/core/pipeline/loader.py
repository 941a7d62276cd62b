"""
Pipeline definition loader.

Starts from the built-in pipeline and applies an optional YAML/JSON override
file. Only a small set of keys can be overridden:

    name: my-service
    default_branch: main
    docker_image: acme/my-service
    variables:
      MAVEN_CLI_OPTS: "--batch-mode"
    deploy_enabled: false

Environment variables:
    COPILOT_PIPELINE_FILE   path to the override file (optional)
    COPILOT_DEFAULT_BRANCH  default branch when the file does not set one
    DOCKER_IMAGE            image repository when the file does not set one

Invalid values are logged and ignored.
"""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from app.core.images.reference import ImageReferenceError, parse_image

from .builtins import DEFAULT_DOCKER_IMAGE, builtin_pipeline
from .models import PipelineDefinition, StageName

_log = logging.getLogger("copilot.pipeline")

# Secrets are referenced from the CI environment, never stored in the definition.
SECRET_VARIABLES = ("DOCKER_USERNAME", "DOCKER_PASSWORD")

_SLUG_INVALID = re.compile(r"[^a-z0-9]")


def ref_slug(ref: str) -> str:
    """Branch name as GitLab exposes it in CI_COMMIT_REF_SLUG (used as cache key)."""
    s = _SLUG_INVALID.sub("-", (ref or "").lower())
    s = s[:63]
    return s.strip("-")


def _resolve_path(path: Optional[Path]) -> Optional[Path]:
    if path is not None:
        return Path(path)
    env_path = os.getenv("COPILOT_PIPELINE_FILE", "").strip()
    if env_path:
        return Path(env_path)
    return None


def _read_overrides(resolved: Path) -> Dict[str, Any]:
    try:
        raw_text = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        _log.warning("Cannot read pipeline override file %s: %s", resolved, exc)
        return {}

    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            _log.warning("Failed to parse pipeline file %s as JSON or YAML: %s", resolved, exc)
            return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        _log.warning("Pipeline override file %s must be a mapping, got %s", resolved, type(data).__name__)
        return {}
    return data


def _docker_image(overrides: Dict[str, Any]) -> str:
    candidates = (("pipeline file", overrides.get("docker_image")), ("DOCKER_IMAGE", os.getenv("DOCKER_IMAGE")))
    for origin, value in candidates:
        image = str(value or "").strip()
        if not image:
            continue
        try:
            parse_image(image)
        except ImageReferenceError as exc:
            _log.warning("Ignoring docker_image from %s: %s", origin, exc)
            continue
        return image
    return DEFAULT_DOCKER_IMAGE


def load_pipeline(path: Optional[Path] = None) -> PipelineDefinition:
    overrides: Dict[str, Any] = {}
    resolved = _resolve_path(path)
    if resolved is not None and resolved.exists():
        overrides = _read_overrides(resolved)
        if overrides:
            _log.info("Loaded pipeline overrides from %s keys=%s", resolved, sorted(overrides.keys()))

    default_branch = str(
        overrides.get("default_branch") or os.getenv("COPILOT_DEFAULT_BRANCH") or "main"
    ).strip()
    docker_image = _docker_image(overrides)

    pipeline = builtin_pipeline(default_branch=default_branch, docker_image=docker_image)

    name = overrides.get("name")
    if isinstance(name, str) and name.strip():
        pipeline.name = name.strip()

    extra_vars = overrides.get("variables") or {}
    if isinstance(extra_vars, dict):
        for k, v in sorted(extra_vars.items()):
            key = str(k)
            if key in SECRET_VARIABLES:
                _log.warning("Ignoring secret variable %s in pipeline file; set it in CI settings", key)
                continue
            if key == "DOCKER_IMAGE":
                _log.warning("Ignoring DOCKER_IMAGE in pipeline variables; use docker_image")
                continue
            pipeline.variables[key] = str(v)
    else:
        _log.warning("Ignoring pipeline variables override: expected mapping, got %s", type(extra_vars).__name__)

    enabled = overrides.get("deploy_enabled")
    if isinstance(enabled, bool):
        for job in pipeline.jobs_for_stage(StageName.DEPLOY.value):
            job.enabled = enabled
    elif enabled is not None:
        _log.warning("Ignoring deploy_enabled override: expected true/false, got %r", enabled)

    return pipeline
