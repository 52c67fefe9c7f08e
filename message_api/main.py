import logging
from contextlib import asynccontextmanager
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Body, Depends, FastAPI, Request, Response, status

from message_api.config import get_settings, settings
from message_api.error_handlers import ExceptionHandlingMiddleware, register_error_handlers
from message_api.logging_utils import setup_logging, RequestLoggingMiddleware, log_message_data
from message_api.metrics import record_message_operation, get_metrics, get_metrics_content_type
from message_api.responses import result_name, to_response
from message_api.results import Created, Result
from message_api.schemas import (
    CreateMessageRequest,
    ErrorResponse,
    HealthResponse,
    Message,
    UpdateMessageRequest,
    ValidationErrorResponse,
)
from message_api.service import MessageService
from message_api.storage import SqlAlchemyMessageStore, build_store


# Setup structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

MESSAGES_PATH = "/api/v1/organizations/{organization_id}/messages"
MESSAGE_PATH = MESSAGES_PATH + "/{message_id}"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    - Startup: build the single store and service instances for the process
    - Shutdown: release database connections for the SQL backend
    """
    config = get_settings()
    store = build_store(config.STORE_BACKEND, config.DATABASE_URL)
    app.state.store = store
    app.state.message_service = MessageService(store)
    yield
    if isinstance(store, SqlAlchemyMessageStore):
        store.dispose()


app = FastAPI(
    title="Organization Messages API",
    description="CRUD service for messages scoped to an organization",
    version="1.0.0",
    lifespan=lifespan,
)

register_error_handlers(app)

# Last added runs first: request logging wraps the 500 fallback
app.add_middleware(ExceptionHandlingMiddleware)
app.add_middleware(RequestLoggingMiddleware)


def get_message_service(request: Request) -> MessageService:
    """Dependency returning the process-wide MessageService."""
    return request.app.state.message_service


ServiceDep = Annotated[MessageService, Depends(get_message_service)]


def _finish(
    request: Request,
    operation: str,
    result: Result,
    organization_id: UUID,
    message_id: Optional[UUID] = None,
) -> Response:
    """Record the outcome for logs and metrics, then build the response."""
    location = None
    if isinstance(result, Created):
        message_id = result.value.id
        location = str(
            request.url_for("get_message", organization_id=organization_id, message_id=message_id)
        )

    outcome = result_name(result)
    record_message_operation(operation, outcome)
    log_message_data(
        request=request,
        operation=operation,
        result=outcome,
        organization_id=organization_id,
        message_id=message_id,
    )

    logger.debug(f"{operation} -> {outcome} (organization_id={organization_id}, message_id={message_id})")
    return to_response(result, location=location)


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """
    Liveness probe - always returns 200 once the app is running.
    """
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
async def health_ready(request: Request, response: Response) -> HealthResponse:
    """
    Readiness probe - returns 200 only if the message store is usable,
    otherwise 503 (Service Unavailable).
    """
    if not request.app.state.store.check_health():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not_ready",
            reason="Message store not reachable or schema not applied"
        )

    return HealthResponse(status="ready")


# =============================================================================
# Message Routes
# =============================================================================

@app.get(
    MESSAGES_PATH,
    response_model=list[Message],
    responses={400: {"model": ValidationErrorResponse}},
)
async def list_messages(request: Request, organization_id: UUID, service: ServiceDep):
    """
    List every message of the organization, newest created first.
    The list may be empty.
    """
    result = service.get_all_messages(organization_id)
    return _finish(request, "list", result, organization_id)


@app.get(
    MESSAGE_PATH,
    response_model=Message,
    responses={404: {"model": ErrorResponse}},
)
async def get_message(request: Request, organization_id: UUID, message_id: UUID, service: ServiceDep):
    """
    Fetch one message. Messages of other organizations are reported as 404.
    """
    result = service.get_message(organization_id, message_id)
    return _finish(request, "get", result, organization_id, message_id)


@app.post(
    MESSAGES_PATH,
    status_code=status.HTTP_201_CREATED,
    response_model=Message,
    responses={
        400: {"model": ValidationErrorResponse, "description": "Invalid title or content"},
        409: {"model": ErrorResponse, "description": "Title already used by an active message"},
    },
)
async def create_message(
    request: Request,
    organization_id: UUID,
    service: ServiceDep,
    payload: Annotated[Optional[CreateMessageRequest], Body()] = None,
):
    """
    Create a message.

    - title: 3-200 characters, unique among the organization's active messages
    - content: 10-1000 characters

    Responds 201 with the stored message and a Location header.
    """
    result = service.create_message(organization_id, payload)
    return _finish(request, "create", result, organization_id)


@app.put(
    MESSAGE_PATH,
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={
        400: {"model": ValidationErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse, "description": "Duplicate title or inactive message"},
    },
)
async def update_message(
    request: Request,
    organization_id: UUID,
    message_id: UUID,
    service: ServiceDep,
    payload: Annotated[Optional[UpdateMessageRequest], Body()] = None,
):
    """
    Replace the title and content of an active message. Responds 204.
    """
    result = service.update_message(organization_id, message_id, payload)
    return _finish(request, "update", result, organization_id, message_id)


@app.delete(
    MESSAGE_PATH,
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse, "description": "Message is inactive"},
    },
)
async def delete_message(request: Request, organization_id: UUID, message_id: UUID, service: ServiceDep):
    """
    Remove an active message. Responds 204.
    """
    result = service.delete_message(organization_id, message_id)
    return _finish(request, "delete", result, organization_id, message_id)


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """
    Expose Prometheus-style metrics.

    Includes:
    - http_requests_total: Total HTTP requests by method, path, status
    - message_operations_total: Service outcomes by operation and result
    - request_latency_seconds: Request latency histogram
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
