from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sprintboard.core.config import settings
from loguru import logger


def setup_cors_middleware(app: FastAPI) -> None:
    """
    Allow the dashboard origins to call the API with their session cookie or token
    """
    allowed_origins = settings.cors_origins_list
    if settings.ENVIRONMENT == "development":
        # Vite dev server defaults
        allowed_origins = allowed_origins + ["http://localhost:5173", "http://127.0.0.1:5173"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(set(allowed_origins)),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=[
            "Accept",
            "Content-Type",
            "Authorization",
            "X-Requested-With",
            "X-Trace-ID",
            "X-GitHub-Event",
            "X-Hub-Signature-256",
        ],
        expose_headers=["X-Trace-ID"],
        max_age=600,
    )

    logger.info(f"CORS configured for {len(set(allowed_origins))} origins")
