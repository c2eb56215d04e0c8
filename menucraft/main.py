"""
FastAPI Application Entry Point

MenuCraft Orders - order lifecycle and realtime kitchen sync.

Endpoints:
    - POST   /api/orders/restaurant/{slug}: Place an order (customer)
    - GET    /api/orders/slug/{slug}: List a restaurant's orders (kitchen)
    - GET    /api/orders/{id}: Fetch one order
    - PUT    /api/orders/{id}/status: Apply a status transition (kitchen)
    - DELETE /api/orders/{id}: Remove an order (kitchen)
    - GET    /api/restaurants/{slug}: Resolve a restaurant
    - WS     /ws/kitchen: Restaurant-scoped realtime channel
    - GET    /health: System health check
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional

from fastapi import (
    Depends,
    FastAPI,
    Query,
    Request,
    Response,
    WebSocket,
    WebSocketDisconnect,
)
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from menucraft.core.config import Settings, get_settings, setup_logging
from menucraft.core.exceptions import OrderingError, ValidationError
from menucraft.database import engine, get_db, init_db
from menucraft.models import OrderStatus
from menucraft.schemas import (
    ErrorResponse,
    HealthResponse,
    OrderCreate,
    OrderSnapshot,
    RestaurantSummary,
    StatusUpdate,
    normalize_enum_token,
)
from menucraft.services.orders import OrderStore, OrderSubmissionService
from menucraft.services.realtime import BaseEventBus, WebSocketSession, get_event_bus
from menucraft.services.realtime.protocol import handle_control_message
from menucraft.services.restaurants import resolve_restaurant

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Channel auth: {'on' if settings.requires_channel_auth else 'off'}")
    logger.info("=" * 60)

    await init_db()
    logger.info("Database initialized")

    event_bus = get_event_bus()
    await event_bus.start()
    logger.info(f"Event Bus: {event_bus.provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"Missing production config: {missing}")

    logger.info("Application ready")

    yield  # Application runs

    logger.info("Shutting down...")
    await event_bus.stop()
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Multi-tenant order lifecycle service. Customers place orders, kitchen "
        "stations move them through PENDING → IN_PROGRESS → COMPLETED and "
        "receive every change over a restaurant-scoped realtime channel."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_events() -> BaseEventBus:
    """Event bus dependency (overridden in tests)."""
    return get_event_bus()


ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    events: BaseEventBus = Depends(get_events),
) -> HealthResponse:
    """Verify the database and the event bus are reachable."""

    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    bus_status = "healthy" if await events.health_check() else "unhealthy"

    overall = "operational" if db_status == bus_status == "healthy" else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        event_bus=f"{bus_status} ({events.provider_name})",
        timestamp=datetime.now(),
    )


# =============================================================================
# RESTAURANT ENDPOINTS
# =============================================================================

@app.get(
    "/api/restaurants/{slug}",
    response_model=RestaurantSummary,
    responses=ERROR_RESPONSES,
    tags=["Restaurants"],
)
async def get_restaurant(
    slug: str,
    db: AsyncSession = Depends(get_db),
) -> RestaurantSummary:
    """Resolve a restaurant slug to its id (kitchen channel join)."""
    restaurant = await resolve_restaurant(db, slug)
    return RestaurantSummary.model_validate(restaurant)


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders/restaurant/{slug}",
    response_model=OrderSnapshot,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Place Order",
)
async def place_order(
    slug: str,
    order_data: OrderCreate,
    db: AsyncSession = Depends(get_db),
    events: BaseEventBus = Depends(get_events),
) -> OrderSnapshot:
    """
    Place a customer order.

    The response is the persisted order; clients must use it (id, order
    number, status, timestamps, totals) instead of their local draft.
    """
    logger.info(f"Placing order for '{slug}': {order_data.customer_name}")

    service = OrderSubmissionService(db, events)
    order = await service.submit(slug, order_data)

    return OrderSnapshot.model_validate(order)


@app.get(
    "/api/orders/slug/{slug}",
    response_model=list[OrderSnapshot],
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="List Orders",
)
async def list_orders(
    slug: str,
    status: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1),
    include_archived: bool = Query(False, alias="includeArchived"),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> list[OrderSnapshot]:
    """Orders of one restaurant, newest first."""

    restaurant = await resolve_restaurant(db, slug)

    status_filter = None
    if status:
        try:
            status_filter = OrderStatus(normalize_enum_token(status))
        except ValueError:
            raise ValidationError(
                f"Invalid status. Options: {[s.value for s in OrderStatus]}"
            )

    limit = min(limit or settings.default_order_limit, settings.max_order_limit)

    store = OrderStore(db)
    orders = await store.list_orders(
        restaurant.id,
        status=status_filter,
        limit=limit,
        include_archived=include_archived,
    )
    return [OrderSnapshot.model_validate(order) for order in orders]


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderSnapshot,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def get_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
) -> OrderSnapshot:
    """Get a specific order by ID."""
    order = await OrderStore(db).get_order(order_id)
    return OrderSnapshot.model_validate(order)


@app.put(
    "/api/orders/{order_id}/status",
    response_model=OrderSnapshot,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Update Order Status",
)
async def update_order_status(
    order_id: str,
    body: StatusUpdate,
    db: AsyncSession = Depends(get_db),
    events: BaseEventBus = Depends(get_events),
) -> OrderSnapshot:
    """
    Apply a status transition.

    Re-applying the status an order already has succeeds without changes,
    so duplicate clicks and retries from several stations are harmless.
    """
    store = OrderStore(db, events)
    result = await store.update_status(order_id, body.status)
    return OrderSnapshot.model_validate(result.order)


@app.delete(
    "/api/orders/{order_id}",
    status_code=204,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def delete_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    events: BaseEventBus = Depends(get_events),
) -> Response:
    """Remove an order. Removing an unknown order is not an error."""
    await OrderStore(db, events).delete_order(order_id)
    return Response(status_code=204)


# =============================================================================
# REALTIME CHANNEL
# =============================================================================

@app.websocket("/ws/kitchen")
async def kitchen_channel(
    websocket: WebSocket,
    events: BaseEventBus = Depends(get_events),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Kitchen realtime channel.

    Sessions receive nothing until they join a restaurant; from then on every
    ``order:new`` / ``order:updated`` / ``order:deleted`` for that restaurant
    is pushed until they leave or disconnect.
    """
    await websocket.accept()
    session = WebSocketSession(websocket)
    registry = events.registry
    logger.info(f"Kitchen session {session.session_id} connected")

    try:
        while True:
            raw = await websocket.receive_text()
            reply = await handle_control_message(raw, session, registry, settings)
            if reply is not None:
                await session.send_json(reply)
    except WebSocketDisconnect as e:
        logger.info(f"Kitchen session {session.session_id} disconnected (code={e.code})")
    finally:
        left = await registry.leave_all(session)
        if left:
            logger.info(f"Kitchen session {session.session_id} left {len(left)} channel(s)")


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(OrderingError)
async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    """Map domain errors to their HTTP status."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.message,
            code=exc.code,
            detail=exc.detail,
        ).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and parameters are a 400 like any other validation failure."""
    errors: list[dict[str, Any]] = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error="Request validation failed",
            code=ValidationError.code,
            detail=errors,
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )
