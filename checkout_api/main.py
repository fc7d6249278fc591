import logging

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from checkout_api.config import Settings
from checkout_api.database import Base, make_engine, make_session_factory
from checkout_api.deps import get_gateway, get_store
from checkout_api.logging import configure_logging, event_id_ctx
from checkout_api.reconcile import reconcile
from checkout_api.routes import router
from checkout_api.store import OrderStore, OrderStoreError
from checkout_api.stripe_service import StripeGateway, WebhookSignatureError

logger = logging.getLogger(__name__)

webhook_router = APIRouter(prefix="/api")


@webhook_router.post("/stripe-webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None),
    store=Depends(get_store),
    gateway=Depends(get_gateway),
):
    # Signature covers the exact bytes; parse only after verifying
    payload = await request.body()

    try:
        event = gateway.construct_event(payload, stripe_signature)
    except WebhookSignatureError as exc:
        logger.warning("Webhook signature verification failed: %s", exc)
        raise HTTPException(status_code=400, detail=f"Webhook Error: {exc}")

    token = event_id_ctx.set(event.event_id or "")
    try:
        outcome = await run_in_threadpool(reconcile, event, store)
        logger.info("Webhook event %s reconciled: %s", event.event_id, outcome.value)
    except OrderStoreError as exc:
        logger.exception("Error reconciling webhook event")
        raise HTTPException(status_code=500, detail=str(exc))
    finally:
        event_id_ctx.reset(token)

    return {"received": True}


def describe_error(error: dict) -> str:
    field = ".".join(str(part) for part in error["loc"][1:])
    return f"{field}: {error['msg']}"


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "detail": "Invalid checkout request: " + "; ".join(describe_error(error) for error in exc.errors()),
            "errors": jsonable_encoder(exc.errors()),
        },
    )


def create_app(settings: Settings = None, store: OrderStore = None, gateway: StripeGateway = None) -> FastAPI:
    """Build the checkout API with explicitly constructed clients.

    Run with ``uvicorn --factory checkout_api.main:create_app``.
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level, settings.service_name)

    if store is None:
        engine = make_engine(settings.database_url, settings.database_password)
        Base.metadata.create_all(bind=engine)
        store = OrderStore(make_session_factory(engine))

    if gateway is None:
        gateway = StripeGateway(
            settings.stripe_secret_key,
            settings.stripe_webhook_secret,
            tolerance=settings.webhook_tolerance,
        )

    app = FastAPI(title="Checkout API")
    app.state.settings = settings
    app.state.store = store
    app.state.gateway = gateway

    app.include_router(router)
    app.include_router(webhook_router)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    return app
