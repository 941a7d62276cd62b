import os
from typing import Any, Dict, Optional

from app.core.policy.engine import PolicyEngine

from .checks import (
    IMAGE_VAR,
    PASSWORD_VAR,
    USERNAME_VAR,
    policy_image_namespace_matches_user,
    policy_password_is_access_token,
    policy_password_maskable,
    policy_require_credentials,
    policy_secret_flags,
    policy_valid_image,
)

DEFAULT_CREDENTIAL_ENGINE = PolicyEngine(
    policies=[
        policy_require_credentials,
        policy_valid_image,
        policy_password_maskable,
        policy_password_is_access_token,
        policy_secret_flags,
        policy_image_namespace_matches_user,
    ]
)


def context_from_env(env: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    src = os.environ if env is None else env
    return {"variables": {k: src.get(k, "") for k in (USERNAME_VAR, PASSWORD_VAR, IMAGE_VAR)}}


__all__ = ["DEFAULT_CREDENTIAL_ENGINE", "context_from_env"]
