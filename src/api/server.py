"""FastAPI server for the image generation router."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from api.dependencies import shutdown_services
from api.routers import core, images
from api.routers.core import API_VERSION
from utils.config import load_config, validate_config
from utils.logging import get_logger

logger = get_logger(__name__)


class NoContentCORSMiddleware(CORSMiddleware):
    """CORSMiddleware whose successful preflight is 204 with an empty body."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            key: value
            for key, value in response.headers.items()
            if key.lower() not in ("content-length", "content-type")
        }
        return Response(status_code=204, headers=headers)


@asynccontextmanager
async def lifespan(app: FastAPI):
    for problem in validate_config(load_config()):
        logger.warning("config.problem", problem=problem)
    yield
    await shutdown_services()


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    app = FastAPI(title="Image Generation API", version=API_VERSION, lifespan=lifespan)

    # All origins permitted, no cookies involved
    app.add_middleware(
        NoContentCORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    app.include_router(core.router)
    app.include_router(images.router)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={"error": "Not found", "details": "Endpoint not found"},
            )
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=load_config()["port"], log_level="info")
