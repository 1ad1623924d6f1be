from __future__ import annotations

from fastapi import FastAPI

from src.application.dtos.common_dto import HealthResponse, RootResponse
from src.config import Settings, configure_logging
from src.infrastructure.api.middlewares import add_default_middlewares
from src.infrastructure.api.routes.auth_routes import router as auth_router
from src.infrastructure.api.routes.grid_routes import router as grid_router
from src.infrastructure.api.routes.listing_routes import router as listing_router
from src.infrastructure.api.routes.session_routes import router as session_router
from src.infrastructure.context import AppContext


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Storefront Media Backend",
        version="0.1.0",
        description="""
        ## Storefront Media Backend API

        FastAPI backend for a wholesale marketplace storefront: listing image uploads
        and bulk stock/price editing, with Supabase for auth, documents and storage.

        ### Features
        - **Authentication**: Token-based authentication with Supabase
        - **Upload Sessions**: Add up to 5 images per listing form, with HEIC/WebP
          conversion, thumbnail/preview/full renditions, reordering and removal
        - **Image Editor**: Quarter-turn rotation and crop, committed in place
        - **Bulk Edit Grid**: Spreadsheet-style stock and price edits with paste,
          undo/redo and one-shot batch save
        - **Listings**: Publish session images to a listing, clone a listing

        ### Authentication
        All endpoints (except root and health) require authentication via Bearer token
        in the Authorization header:
        ```
        Authorization: Bearer your-jwt-token
        ```

        ### Error Responses
        Errors carry a short message with a recovery hint in `detail`:
        - **400 Bad Request**: Invalid input (size, type, capacity, order, crop area, cell)
        - **401 Unauthorized**: Missing or invalid authentication token
        - **404 Not Found**: Session, grid or listing does not exist for this user
        - **422 Unprocessable Entity**: Malformed request or image that could not be converted
        - **502 Bad Gateway**: Storage or database write failed
        """,
    )
    app.state.context = AppContext.build(settings)
    add_default_middlewares(app, settings)

    @app.get(
        "/",
        response_model=RootResponse,
        summary="API Root",
        description="Get basic information about the Storefront Media API",
        response_description="API information including status and version",
    )
    def root():
        """Get API root information."""
        return {"status": "ok", "service": "storefront-media", "version": app.version}

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check if the API service is running and healthy",
        response_description="Health status of the API service",
    )
    def health():
        """Check API health status."""
        return {"status": "healthy"}

    app.include_router(auth_router)
    app.include_router(session_router)
    app.include_router(grid_router)
    app.include_router(listing_router)
    return app


app = create_app()
