"""FastAPI application entry point."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from deploy_hook.config import Settings
from deploy_hook.deploy.executor import DeploymentExecutor
from deploy_hook.deploy.pipeline import DeploymentPipeline
from deploy_hook.deploy.resolver import CommandResolver
from deploy_hook.notify.discord import DiscordNotifier, rfc3339_now
from deploy_hook.webhook import handler as webhook_handler
from deploy_hook.webhook.handler import router as webhook_router

logger = logging.getLogger(__name__)


def _mask(value: str) -> str:
    if not value:
        return "(not set)"
    return value[:4] + "…" if len(value) > 8 else "****"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    resolver = CommandResolver(settings)
    executor = DeploymentExecutor(resolver)
    notifier = DiscordNotifier(settings.discord_webhook)
    pipeline = DeploymentPipeline(
        executor, notifier, serialize=settings.serialize_deployments,
    )

    # Inject dependencies into webhook handler
    webhook_handler.configure(settings, pipeline)

    logger.info(
        "Deploy webhook started on %s:%d (secret: %s, discord webhook: %s, "
        "per-repo command overrides: %d, per-repo work dirs: %d)",
        settings.host, settings.port,
        _mask(settings.webhook_secret), _mask(settings.discord_webhook),
        len(settings.repo_commands), len(settings.repo_work_dirs),
    )
    yield

    # Cleanup
    await notifier.close()
    logger.info("Deploy webhook stopped")


app = FastAPI(title="Deploy Webhook", lifespan=lifespan)
app.include_router(webhook_router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    client = request.client.host if request.client else "-"
    logger.info("%s %s from %s", request.method, request.url.path, client)
    response = await call_next(request)
    logger.info(
        "Request completed in %.1fms (status %d)",
        (time.perf_counter() - start) * 1000, response.status_code,
    )
    return response


@app.get("/health")
async def health():
    return {"status": "healthy", "time": rfc3339_now()}


def run() -> None:
    import uvicorn

    settings = Settings()
    uvicorn.run(
        "deploy_hook.main:app",
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    run()
