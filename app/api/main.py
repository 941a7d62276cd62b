from __future__ import annotations

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.endpoints import credentials, health, images, pipeline, runs, trigger
from app.api.endpoints import metrics as metrics_ep
from app.api.endpoints import metrics_export
from app.api.middleware.error_shaping import SafeErrorMiddleware
from app.api.middleware.request_context import RequestContextMiddleware

app = FastAPI(
    title="CI Pipeline Copilot API",
    version="0.1.0",
)

# ------------------------------------------------------------
# Middleware stack (ORDER MATTERS)
# Starlette reverses add_middleware order: the LAST call is the OUTERMOST wrapper.
# Runtime order (outermost -> innermost):
#   SafeErrorMiddleware -> CORSMiddleware -> RequestContext -> handler
# ------------------------------------------------------------

app.add_middleware(RequestContextMiddleware)

_cors_origins_raw = os.getenv("COPILOT_CORS_ORIGINS", "").strip()
_cors_origins = [o.strip() for o in _cors_origins_raw.split(",") if o.strip()] if _cors_origins_raw else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(SafeErrorMiddleware)


# ------------------------------------------------------------
# Routers
# ------------------------------------------------------------
app.include_router(health.router)
app.include_router(trigger.router)
app.include_router(pipeline.router)
app.include_router(images.router)
app.include_router(credentials.router)
app.include_router(runs.router)
app.include_router(metrics_ep.router)
app.include_router(metrics_export.router)
