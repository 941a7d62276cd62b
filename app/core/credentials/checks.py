from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from app.core.images.reference import ImageReferenceError, parse_image
from app.core.policy.models import PolicyResult, PolicyStatus

USERNAME_VAR = "DOCKER_USERNAME"
PASSWORD_VAR = "DOCKER_PASSWORD"
IMAGE_VAR = "DOCKER_IMAGE"

SECRET_VARS = (USERNAME_VAR, PASSWORD_VAR)

ACCESS_TOKEN_PREFIX = "dckr_pat_"

# GitLab masked variables: one line, >= 8 chars, base64 alphabet plus @ : . ~ - _
_MASKABLE = re.compile(r"^[A-Za-z0-9+/=@:.~_-]{8,}$")


def _vars(ctx: Dict[str, Any]) -> Dict[str, str]:
    return {k: ("" if v is None else str(v)) for k, v in (ctx.get("variables") or {}).items()}


def _flags(ctx: Dict[str, Any], name: str) -> Optional[Dict[str, Any]]:
    f = (ctx.get("flags") or {}).get(name)
    return f if isinstance(f, dict) else None


def policy_require_credentials(ctx: Dict[str, Any]) -> Optional[PolicyResult]:
    v = _vars(ctx)
    missing = [name for name in SECRET_VARS if not v.get(name, "").strip()]
    if missing:
        return PolicyResult(
            status=PolicyStatus.FAIL,
            code="CREDENTIALS_MISSING",
            message="Docker Hub credentials are not set as CI/CD variables.",
            details={"missing": missing},
        )
    return None


def policy_valid_image(ctx: Dict[str, Any]) -> Optional[PolicyResult]:
    image = _vars(ctx).get(IMAGE_VAR, "").strip()
    if not image:
        return PolicyResult(
            status=PolicyStatus.FAIL,
            code="IMAGE_INVALID",
            message="DOCKER_IMAGE is not set.",
            details={"field": IMAGE_VAR},
        )
    try:
        parse_image(image)
    except ImageReferenceError as e:
        return PolicyResult(
            status=PolicyStatus.FAIL,
            code="IMAGE_INVALID",
            message=str(e),
            details={"field": IMAGE_VAR, "value": image},
        )
    return None


def policy_password_is_access_token(ctx: Dict[str, Any]) -> Optional[PolicyResult]:
    password = _vars(ctx).get(PASSWORD_VAR, "")
    if password and not password.startswith(ACCESS_TOKEN_PREFIX):
        return PolicyResult(
            status=PolicyStatus.WARN,
            code="PASSWORD_NOT_ACCESS_TOKEN",
            message="DOCKER_PASSWORD does not look like a Docker Hub access token; use a token, not the account password.",
            details={"field": PASSWORD_VAR, "expected_prefix": ACCESS_TOKEN_PREFIX},
        )
    return None


def policy_password_maskable(ctx: Dict[str, Any]) -> Optional[PolicyResult]:
    password = _vars(ctx).get(PASSWORD_VAR, "")
    if password and not _MASKABLE.match(password):
        reason = "too_short" if len(password) < 8 else "unsupported_characters"
        return PolicyResult(
            status=PolicyStatus.FAIL,
            code="PASSWORD_NOT_MASKABLE",
            message="DOCKER_PASSWORD cannot be masked in job logs.",
            details={"field": PASSWORD_VAR, "reason": reason},
        )
    return None


def policy_secret_flags(ctx: Dict[str, Any]) -> List[PolicyResult]:
    out: List[PolicyResult] = []
    for name in SECRET_VARS:
        f = _flags(ctx, name)
        if f is None:
            continue
        if not f.get("masked", False):
            out.append(
                PolicyResult(
                    status=PolicyStatus.WARN,
                    code="VARIABLE_NOT_MASKED",
                    message=f"{name} is not marked as masked.",
                    details={"field": name},
                )
            )
        if not f.get("protected", False):
            out.append(
                PolicyResult(
                    status=PolicyStatus.WARN,
                    code="VARIABLE_NOT_PROTECTED",
                    message=f"{name} is not marked as protected.",
                    details={"field": name},
                )
            )
    return out


def policy_image_namespace_matches_user(ctx: Dict[str, Any]) -> Optional[PolicyResult]:
    v = _vars(ctx)
    username = v.get(USERNAME_VAR, "").strip()
    image = v.get(IMAGE_VAR, "").strip()
    if not username or not image:
        return None
    try:
        ref = parse_image(image)
    except ImageReferenceError:
        return None  # reported by policy_valid_image

    if ref.namespace.lower() != username.lower():
        return PolicyResult(
            status=PolicyStatus.WARN,
            code="IMAGE_NAMESPACE_MISMATCH",
            message="DOCKER_IMAGE namespace differs from DOCKER_USERNAME; push may be denied.",
            details={"namespace": ref.namespace, "field": USERNAME_VAR},
        )
    return None
