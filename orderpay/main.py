from contextlib import asynccontextmanager
from datetime import timedelta

import structlog
from fastapi import FastAPI, Header, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from orderpay import errors
from orderpay.auth import CredentialVerifier
from orderpay.bridge import PaymentIntentBridge
from orderpay.config import Settings
from orderpay.database import init_db, make_engine, make_session_factory
from orderpay.ledger import OrderLedger
from orderpay.logs import configure_logging
from orderpay.reconciler import WebhookReconciler
from orderpay.routes import router
from orderpay.stripe_service import StripeGateway
from orderpay.users import UserDirectory

logger = structlog.get_logger(__name__)


def create_app(settings: Settings | None = None, gateway=None) -> FastAPI:
    """Build the API; collaborators are created in the lifespan, not at import."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config = settings or Settings.from_env()
        configure_logging(config.log_level, config.log_json)

        engine = make_engine(config.database_url, timeout=config.db_timeout_seconds)
        init_db(engine)
        sessions = make_session_factory(engine)

        ledger = OrderLedger(sessions)
        processor = gateway or StripeGateway(
            config.stripe_secret_key,
            timeout=config.stripe_timeout_seconds,
            max_network_retries=config.stripe_max_network_retries,
        )

        app.state.settings = config
        app.state.verifier = CredentialVerifier(
            config.jwt_secret, expires=timedelta(days=config.jwt_expires_days)
        )
        app.state.users = UserDirectory(sessions)
        app.state.ledger = ledger
        app.state.bridge = PaymentIntentBridge(ledger, processor, currency=config.payment_currency)
        app.state.reconciler = WebhookReconciler(ledger, config.stripe_webhook_secret)

        logger.info("service_started")
        yield
        engine.dispose()
        logger.info("service_stopped")

    app = FastAPI(title="Order Payment Service", lifespan=lifespan)
    app.include_router(router)

    @app.post("/webhook")
    async def stripe_webhook(request: Request, stripe_signature: str = Header(None)):
        # Signature must be checked against the exact bytes received
        payload = await request.body()
        reconciler: WebhookReconciler = request.app.state.reconciler

        try:
            result = await run_in_threadpool(reconciler.handle_event, payload, stripe_signature)
        except errors.SignatureError as exc:
            raise HTTPException(status_code=400, detail=str(exc))

        return {"received": True, "outcome": result.outcome.value}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
