import logging

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from legtrack.api.v1.endpoints.api import api_router
from legtrack.core.config import settings
from legtrack.core.errors import ValidationFailure
from legtrack.db.store import StoreHandle, get_store

logger = logging.getLogger(__name__)

app = FastAPI(title="LEGTRACK API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin for origin in settings.CORS_ALLOW_ORIGINS.split(",") if origin] or ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and parameters use the same 400 VALIDATION_ERROR shape as store failures."""
    errors = [
        {
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning("request_validation_failed path=%s errors=%s", request.url.path, len(errors))
    failure = ValidationFailure("Invalid request payload.", context={"errors": errors})
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": failure.to_detail()})


app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
def health(store: StoreHandle = Depends(get_store)):
    if not store.is_available():
        return {"status": "degraded", "store": "unavailable"}
    return {"status": "up", "store": "available"}
