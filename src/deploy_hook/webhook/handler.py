"""Webhook endpoint for receiving GitHub deployment events."""

import logging

from fastapi import APIRouter, BackgroundTasks, Header, HTTPException, Request
from pydantic import ValidationError

from deploy_hook.config import Settings
from deploy_hook.deploy.pipeline import DeploymentPipeline
from deploy_hook.webhook.classifier import classify_payload
from deploy_hook.webhook.models import EventType, WebhookPayload
from deploy_hook.webhook.signature import signature_from_headers, verify_signature

logger = logging.getLogger(__name__)

router = APIRouter()

# These will be injected at app startup
_settings: Settings | None = None
_pipeline: DeploymentPipeline | None = None


def configure(settings: Settings, pipeline: DeploymentPipeline) -> None:
    global _settings, _pipeline
    _settings = settings
    _pipeline = pipeline


def _parse_payload(body: bytes) -> WebhookPayload:
    # A bare JSON null is an empty payload, which classifies as unknown
    if body.strip() == b"null":
        return WebhookPayload()
    return WebhookPayload.model_validate_json(body)


@router.post("/deploy")
async def handle_deploy(
    request: Request,
    background_tasks: BackgroundTasks,
    x_hub_signature_256: str | None = Header(None),
    x_github_signature_256: str | None = Header(None),
    x_github_event: str | None = Header(None),
):
    """Verify, classify and accept a deployment webhook.

    The deployment itself runs as a background task after the response has
    been sent, so the caller never waits for the commands.
    """
    client = request.client.host if request.client else "-"

    # Verify against the raw bytes, before any parsing
    body = await request.body()
    signature = signature_from_headers(x_hub_signature_256, x_github_signature_256)
    if not verify_signature(body, signature, _settings.webhook_secret):
        logger.warning("Invalid signature from %s", client)
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        payload = _parse_payload(body)
    except ValidationError as exc:
        logger.warning("Error parsing JSON payload from %s: %s", client, exc)
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    event_type = classify_payload(payload, x_github_event)
    if event_type == EventType.UNKNOWN:
        return {"status": "ignored", "message": "Unknown payload type"}

    background_tasks.add_task(_pipeline.run_detached, payload, event_type)

    return {
        "status": "accepted",
        "message": "Deployment initiated",
        "type": event_type.value,
    }
