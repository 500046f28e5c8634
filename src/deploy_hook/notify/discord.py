import logging
from datetime import datetime, timezone

import httpx

from deploy_hook.notify.models import DiscordMessage, Embed, EmbedField, EmbedFooter
from deploy_hook.webhook.models import EventType, WebhookPayload

logger = logging.getLogger(__name__)

SUCCESS_COLOR = 0x00FF00
FAILURE_COLOR = 0xFF0000
SUCCESS_STATUS = "✅ Deployment Successful"
FAILURE_STATUS = "❌ Deployment Failed"
FOOTER_TEXT = "Auto Deploy Webhook"
EMPTY_VALUE = "-"


def rfc3339_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def short_sha(value: str | None) -> str:
    return (value or "")[:7]


def _field(name: str, value: str | None, inline: bool = True) -> EmbedField:
    # Discord rejects embeds with empty field values
    return EmbedField(name=name, value=value or EMPTY_VALUE, inline=inline)


def _package_fields(payload: WebhookPayload) -> list[EmbedField]:
    package = payload.package
    return [
        _field("Package", package.name),
        _field("Version", package.package_version),
        _field("Registry", package.registry.type),
    ]


def _workflow_fields(payload: WebhookPayload) -> list[EmbedField]:
    deployment = payload.deployment
    docker = payload.docker
    return [
        _field("Environment", deployment.environment),
        _field("Branch", deployment.branch),
        _field("Commit", short_sha(deployment.commit)),
        _field("Docker Image", docker.latest_image, inline=False),
        _field("Registry", docker.registry),
        _field("Tags", f"latest: {docker.latest_tag or ''}\nversioned: {docker.versioned_tag or ''}"),
    ]


def _push_fields(payload: WebhookPayload) -> list[EmbedField]:
    commit = payload.head_commit
    return [
        _field("Branch", (payload.ref or "").replace("refs/heads/", "", 1)),
        _field("Commit", f"[{short_sha(commit.id)}]({commit.url or ''})"),
        _field("Author", payload.pusher.name),
        _field("Message", commit.message, inline=False),
    ]


def build_message(payload: WebhookPayload, success: bool, event_type: EventType) -> DiscordMessage:
    """Build the single-embed deployment summary for an event type."""
    status = SUCCESS_STATUS if success else FAILURE_STATUS

    if event_type == EventType.PACKAGE:
        title = f"{status} - Package Deployment"
        fields = _package_fields(payload)
    elif event_type == EventType.WORKFLOW:
        title = f"{status} - Workflow Deployment"
        fields = _workflow_fields(payload)
    else:
        title = f"{status} - Code Deployment"
        fields = _push_fields(payload)

    embed = Embed(
        title=title,
        description=f"Repository: **{payload.full_name}**",
        color=SUCCESS_COLOR if success else FAILURE_COLOR,
        fields=fields,
        footer=EmbedFooter(text=FOOTER_TEXT),
        timestamp=rfc3339_now(),
    )
    return DiscordMessage(embeds=[embed])


class DiscordNotifier:
    def __init__(self, webhook_url: str, client: httpx.AsyncClient | None = None) -> None:
        self._webhook_url = webhook_url
        self._client = client or httpx.AsyncClient(timeout=30.0)

    async def close(self) -> None:
        await self._client.aclose()

    async def notify(self, payload: WebhookPayload, success: bool, event_type: EventType) -> None:
        """Post the deployment outcome. Delivery problems are logged, never raised."""
        if not self._webhook_url:
            logger.warning("DISCORD_WEBHOOK is not set, skipping notification")
            return

        message = build_message(payload, success, event_type)
        logger.info("Sending Discord notification...")
        try:
            resp = await self._client.post(
                self._webhook_url,
                json=message.model_dump(exclude_none=True),
            )
        except httpx.HTTPError as exc:
            logger.error("Error sending Discord notification: %s", exc)
            return

        if resp.status_code != 204:
            logger.warning(
                "Discord webhook returned status %d: %s", resp.status_code, resp.text
            )
        else:
            logger.info("Discord notification sent successfully")
