"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.datastructures import Headers

from app.api import router as api_router
from app.core.config import get_settings


class EmptyPreflightCORSMiddleware(CORSMiddleware):
    """CORS middleware whose accepted pre-flights carry an empty body."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            key: value
            for key, value in response.headers.items()
            if key not in ("content-length", "content-type")
        }
        return Response(status_code=200, headers=headers)


app = FastAPI(
    title="Co-Partner Engine",
    description="Business plan scoring and persona chat service",
    version="0.1.0",
)

app.add_middleware(
    EmptyPreflightCORSMiddleware,
    allow_origins=get_settings().CORS_ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


# Include v1 API router
app.include_router(api_router, prefix="/v1", tags=["v1"])
