"""
Licence Finder - FastAPI Backend

Reconciles the DMS document extract against NALD licence records.

Run Instructions:
-----------------
1. Install dependencies:
   pip install -e .

2. Run the app locally with uvicorn:
   uvicorn main:app --host 0.0.0.0 --port 8000 --reload

3. Test /health endpoint:
   curl http://localhost:8000/health

4. Run a reconciliation:
   curl -X POST http://localhost:8000/reconciliation/run \
     -H "Content-Type: application/json" -d @request.json
"""
import time

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from licencefinder.api import reconciliation_router
from licencefinder.services.errors import LicenceFinderError, to_http_exception
from licencefinder.services.logging import log_error, logger

app = FastAPI(
    title="Licence Finder API",
    description="""
    Licence Finder - DMS / NALD licence reconciliation

    For every NALD licence, picks the DMS file that is the licence document,
    or reports why none could be found.

    ## Reconciliation
    - Prioritised folder and filename rules, with manual folder fixes
    - Analyst overrides while their issue number is current
    - Diff against the previous iteration
    - Version mismatch detection between scraped issue dates and NALD signature dates

    ## Reporting
    - Duplicate licence files left behind by migration
    - Download manifest for newly matched files
    """,
    version="0.1.0",
)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log requests."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            log_error("request_exception", str(e), {"path": request.url.path, "method": request.method})
            raise
        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "%s %s %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response


app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(LicenceFinderError)
async def licence_finder_exception_handler(request: Request, exc: LicenceFinderError):
    """Handle LicenceFinderErrors that escape a route with structured responses."""
    log_error(exc.code.value, str(exc), exc.context)
    http_exception = to_http_exception(exc)
    return JSONResponse(
        status_code=http_exception.status_code,
        content=exc.to_dict()
    )


app.include_router(reconciliation_router)


@app.get("/health", tags=["System"], summary="Health Check")
def health():
    """Health check endpoint."""
    return {"status": "healthy", "service": "licencefinder", "version": app.version}
