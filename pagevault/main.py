import logging
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry.trace import get_current_span

from pagevault.api.routes.activities import router as activities_router
from pagevault.api.routes.admin_discounts import router as admin_discounts_router
from pagevault.api.routes.admin_documents import router as admin_documents_router
from pagevault.api.routes.admin_purchases import router as admin_purchases_router
from pagevault.api.routes.admin_users import router as admin_users_router
from pagevault.api.routes.auth import router as auth_router
from pagevault.api.routes.discounts import router as discounts_router
from pagevault.api.routes.documents import router as documents_router
from pagevault.api.routes.health import router as health_router
from pagevault.api.routes.purchases import router as purchases_router
from pagevault.api.routes.users import router as users_router
from pagevault.core.config import settings
from pagevault.core.db import get_sessionmaker, init_engine_and_session
from pagevault.services.bootstrap_service import bootstrap_service
from pagevault.utils.envelopes import api_error, api_success
from pagevault.utils.exceptions import AppException


app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)

# Telemetry / Azure Monitor (optional)
_logger = logging.getLogger("pagevault.api")
try:
	if settings.ENABLE_APP_INSIGHTS and settings.AZURE_MONITOR_CONN_STR:
		from azure.monitor.opentelemetry import configure_azure_monitor
		from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
		from opentelemetry.instrumentation.logging import LoggingInstrumentor

		configure_azure_monitor(
			connection_string=settings.AZURE_MONITOR_CONN_STR,
			sampling_ratio=settings.SAMPLING_RATIO,
		)
		# Include trace/span ids in stdlib logging records
		LoggingInstrumentor().instrument(set_logging_format=True)
		FastAPIInstrumentor.instrument_app(app)
		_logger.info("Azure Monitor telemetry is enabled")
except Exception as telemetry_exc:
	# Telemetry is optional; startup continues without it
	logging.getLogger(__name__).warning("Failed to initialize Azure Monitor telemetry: %s", telemetry_exc)

app.add_middleware(
	CORSMiddleware,
	allow_origins=["*"],
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
	expose_headers=["X-Preview-Mode", "X-Free-Pages", "X-Total-Pages", "X-Access-Tier"],
)

# Normalize API prefix (must not end with '/')
_api_prefix = settings.API_PREFIX.rstrip("/")

for _router in (
	health_router,
	auth_router,
	users_router,
	documents_router,
	discounts_router,
	purchases_router,
	admin_documents_router,
	admin_discounts_router,
	admin_purchases_router,
	admin_users_router,
	activities_router,
):
	app.include_router(_router, prefix=_api_prefix)


def _trace_id() -> Optional[str]:
	span = get_current_span()
	trace_id_int = span.get_span_context().trace_id if span else 0
	return f"{trace_id_int:032x}" if trace_id_int else None


# Structured request logging (includes trace correlation where available)
@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
	start_time = time.perf_counter()
	forwarded = request.headers.get("x-forwarded-for")
	client_ip: Optional[str] = forwarded.split(",")[0].strip() if forwarded else (request.client.host if request.client else None)
	user_agent: Optional[str] = request.headers.get("user-agent")
	status_code: Optional[int] = None
	try:
		response = await call_next(request)
		status_code = response.status_code
		return response
	except Exception:
		_logger.exception(
			"Unhandled exception during request",
			extra={
				"http.method": request.method,
				"http.route": request.url.path,
				"net.peer.ip": client_ip,
				"http.user_agent": user_agent,
				"trace_id": _trace_id(),
			},
		)
		raise
	finally:
		elapsed_ms = (time.perf_counter() - start_time) * 1000.0
		_logger.info(
			"HTTP request",
			extra={
				"http.method": request.method,
				"http.route": request.url.path,
				"http.status_code": status_code,
				"http.duration_ms": round(elapsed_ms, 2),
				"net.peer.ip": client_ip,
				"http.user_agent": user_agent,
				"trace_id": _trace_id(),
			},
		)


@app.on_event("startup")
async def on_startup() -> None:
	init_engine_and_session()
	if settings.BOOTSTRAP_ADMIN_EMAIL:
		async with get_sessionmaker()() as session:
			await bootstrap_service.ensure_bootstrap_admin(session)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
	if exc.status_code >= 500:
		_logger.error(
			"Request failed: %s",
			exc.message,
			extra={"http.route": request.url.path, "error.code": exc.code, "trace_id": _trace_id()},
		)
	headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
	return JSONResponse(
		status_code=exc.status_code,
		content=api_error(code=exc.code, message=exc.message, details=exc.details),
		headers=headers,
	)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
	details = [
		{"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg"), "type": err.get("type")}
		for err in exc.errors()
	]
	return JSONResponse(
		status_code=400,
		content=api_error(code="VALIDATION_ERROR", message="Request validation failed", details=details),
	)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
	_logger.exception(
		"Unhandled exception",
		extra={
			"http.method": request.method,
			"http.route": request.url.path,
			"trace_id": _trace_id(),
		},
	)
	return JSONResponse(status_code=500, content=api_error(code="INTERNAL_SERVER_ERROR", message="An unexpected error occurred"))


@app.get("/")
async def root():
	return api_success({"service": settings.APP_NAME, "status": "ok"})
