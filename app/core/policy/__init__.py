from .engine import PolicyEngine
from .models import PolicyResult, PolicyStatus

__all__ = ["PolicyEngine", "PolicyResult", "PolicyStatus"]
