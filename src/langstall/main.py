from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from . import __version__
from .config import settings
from .logging import configure_logging, logger
from .middleware import AccessLogMiddleware, RequestIDMiddleware
from .routers import health, vocabulary
from .scheduler import InvalidQuality

configure_logging()
app = FastAPI(title="Langstall API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.allowed_cors_origins),
    allow_credentials="*" not in settings.allowed_cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
# added last so it runs first and the access log sees the request id
app.add_middleware(AccessLogMiddleware)
app.add_middleware(RequestIDMiddleware)


@app.exception_handler(InvalidQuality)
async def _invalid_quality_handler(request: Request, exc: InvalidQuality) -> JSONResponse:
    logger.warning("review_rejected", path=request.url.path, quality=repr(exc.quality))
    return JSONResponse(status_code=400, content={"detail": str(exc)})


app.include_router(vocabulary.router, prefix="/api/vocabulary")  # saved words and reviews
app.include_router(health.router)  # health check and metrics


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run("langstall.main:app", host="0.0.0.0", port=8000)
