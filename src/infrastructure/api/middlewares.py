from __future__ import annotations

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from src.config import Settings


def add_default_middlewares(app: FastAPI, settings: Settings) -> None:
    # CORS configuration
    # Storefront dev servers locally, any origin elsewhere
    if settings.env in ("development", "staging"):
        allowed_origins = [
            "http://localhost:3000",
            "http://localhost:5000",
            "http://localhost:5173",  # Vite default
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5000",
            "http://127.0.0.1:5173",
        ]
    else:
        allowed_origins = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
