import asyncio
import os

from fastapi import FastAPI

from relay.config import settings
from relay.logging_config import get_logger, setup_logging
from relay.routers import webhook
from relay.services.relay_service import build_relay_service

setup_logging(settings.log_level)

app = FastAPI(
    title="WhatsApp Relay",
    description="Webhook relay with per-user sessions, commands and polls",
    version="0.1.0",
)

app.include_router(webhook.router)
app.state.relay_service = build_relay_service(settings)

sweep_logger = get_logger("session_sweep")
_sweep_task: asyncio.Task | None = None


def _is_sweep_enabled() -> bool:
    if os.environ.get("PYTEST_CURRENT_TEST"):
        return False
    return settings.session_sweep_enabled


async def _session_sweep_loop() -> None:
    interval_seconds = max(settings.session_sweep_interval_seconds, 1.0)
    while True:
        try:
            await asyncio.sleep(interval_seconds)
            app.state.relay_service.sweep()
        except asyncio.CancelledError:
            break
        except Exception as exc:
            sweep_logger.error(
                "Session sweep failed",
                extra={"context": {"error": str(exc)}},
            )


@app.on_event("startup")
async def start_session_sweep() -> None:
    global _sweep_task
    if not _is_sweep_enabled():
        return
    if _sweep_task is None or _sweep_task.done():
        _sweep_task = asyncio.create_task(_session_sweep_loop())
        sweep_logger.info("Session sweep started", extra={"context": {"interval": settings.session_sweep_interval_seconds}})


@app.on_event("shutdown")
async def stop_session_sweep() -> None:
    global _sweep_task
    if _sweep_task is None:
        return
    _sweep_task.cancel()
    try:
        await _sweep_task
    except asyncio.CancelledError:
        pass
    _sweep_task = None


@app.get("/")
async def root():
    return {"status": "ok", "service": "whatsapp-relay"}


@app.get("/health")
async def health():
    relay_service = app.state.relay_service
    return {
        "status": "ok",
        "sessions": len(relay_service.store),
        "polls": len(relay_service.router.polls),
    }
