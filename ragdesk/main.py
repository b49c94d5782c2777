# =============================================
# File: ragdesk/main.py
# Purpose: FastAPI app: routers, structured request logging, error mapping
# =============================================
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse

from ragdesk.errors import RagdeskError
from ragdesk.routers import analytics, auth, chat, metrics
from ragdesk.utils import slog
from ragdesk.utils.logging import configure_logging
from ragdesk.utils.metrics import record_endpoint

configure_logging()

app = FastAPI(
    title="ragdesk",
    description="Chat gateway to a flow-execution service with LLM quality analytics.",
    version="0.1.0",
)


@app.exception_handler(RagdeskError)
async def _ragdesk_error_handler(request: Request, exc: RagdeskError):
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


@app.middleware("http")
async def _request_log_middleware(request: Request, call_next):
    """One structured log line and one endpoint timing per request; tags the reply with X-Request-ID."""
    request_id = slog.new_request_id()
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as exc:
        slog.finalize_request_log(request, request_id, _elapsed_ms(started), error=exc)
        raise

    latency_ms = _elapsed_ms(started)
    slog.finalize_request_log(request, request_id, latency_ms, status=response.status_code)
    record_endpoint(request.method, request.url.path, latency_ms)
    response.headers["X-Request-ID"] = request_id
    return response


@app.get("/", include_in_schema=False)
def root():
    return RedirectResponse(url="/docs")


@app.get("/health", tags=["ops"])
def health():
    return {"status": "ok", "service": "ragdesk"}


app.include_router(chat.router)
app.include_router(analytics.router)
app.include_router(auth.router)
app.include_router(metrics.router)
