import json

import httpx
import pytest

from deploy_hook.notify.discord import (
    FAILURE_COLOR,
    SUCCESS_COLOR,
    DiscordNotifier,
    build_message,
)
from deploy_hook.webhook.models import EventType, WebhookPayload

WEBHOOK_URL = "https://discord.example/api/webhooks/1/token"


def _fields(message) -> dict[str, str]:
    return {f.name: f.value for f in message.embeds[0].fields}


class TestBuildMessage:
    def test_push_success(self, push_payload):
        message = build_message(WebhookPayload.model_validate(push_payload), True, EventType.PUSH)
        embed = message.embeds[0]
        assert embed.title == "✅ Deployment Successful - Code Deployment"
        assert embed.color == SUCCESS_COLOR
        assert embed.description == "Repository: **acme/my-api**"
        assert embed.footer.text == "Auto Deploy Webhook"
        assert embed.timestamp.endswith("Z")
        assert _fields(message) == {
            "Branch": "main",
            "Commit": "[abcdef1](https://github.com/acme/my-api/commit/abcdef1234567890)",
            "Author": "octocat",
            "Message": "Fix login redirect",
        }

    def test_push_failure(self, push_payload):
        message = build_message(WebhookPayload.model_validate(push_payload), False, EventType.PUSH)
        assert message.embeds[0].title == "❌ Deployment Failed - Code Deployment"
        assert message.embeds[0].color == FAILURE_COLOR

    def test_package(self, package_payload):
        message = build_message(WebhookPayload.model_validate(package_payload), True, EventType.PACKAGE)
        assert message.embeds[0].title.endswith("Package Deployment")
        assert _fields(message) == {"Package": "shop", "Version": "1.4.0", "Registry": "container"}

    def test_workflow(self, workflow_payload):
        message = build_message(WebhookPayload.model_validate(workflow_payload), True, EventType.WORKFLOW)
        fields = _fields(message)
        assert message.embeds[0].title.endswith("Workflow Deployment")
        assert fields["Environment"] == "production"
        assert fields["Commit"] == "0123456"
        assert fields["Docker Image"] == "ghcr.io/acme/shop:latest"
        assert fields["Registry"] == "ghcr.io"
        assert fields["Tags"] == "latest: latest\nversioned: v1.4.0"

    def test_short_commit_ids_do_not_fail(self):
        payload = WebhookPayload.model_validate({"ref": "refs/heads/dev", "head_commit": {"id": "abc"}})
        fields = _fields(build_message(payload, True, EventType.PUSH))
        assert fields["Commit"].startswith("[abc]")
        assert fields["Branch"] == "dev"

    def test_empty_values_rendered_as_dash(self):
        fields = _fields(build_message(WebhookPayload(), True, EventType.PACKAGE))
        assert set(fields.values()) == {"-"}


def _notifier(handler) -> DiscordNotifier:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DiscordNotifier(WEBHOOK_URL, client=client)


class TestNotify:
    @pytest.mark.asyncio
    async def test_posts_embed(self, push_payload):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(204)

        notifier = _notifier(handler)
        await notifier.notify(WebhookPayload.model_validate(push_payload), True, EventType.PUSH)
        await notifier.close()

        assert len(requests) == 1
        assert str(requests[0].url) == WEBHOOK_URL
        body = json.loads(requests[0].content)
        assert body["embeds"][0]["title"].startswith("✅")
        assert "content" not in body

    @pytest.mark.asyncio
    async def test_non_204_is_logged_not_raised(self, push_payload, caplog):
        notifier = _notifier(lambda request: httpx.Response(400, text="bad embed"))
        await notifier.notify(WebhookPayload.model_validate(push_payload), False, EventType.PUSH)
        assert "status 400" in caplog.text

    @pytest.mark.asyncio
    async def test_transport_error_is_logged_not_raised(self, push_payload, caplog):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        notifier = _notifier(handler)
        await notifier.notify(WebhookPayload.model_validate(push_payload), True, EventType.PUSH)
        assert "Error sending Discord notification" in caplog.text

    @pytest.mark.asyncio
    async def test_unset_webhook_skips(self, push_payload):
        calls = []
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: calls.append(r)))
        notifier = DiscordNotifier("", client=client)
        await notifier.notify(WebhookPayload.model_validate(push_payload), True, EventType.PUSH)
        assert calls == []
