import json

import pytest

from deploy_hook.config import Settings
from deploy_hook.webhook.signature import compute_signature

TEST_SECRET = "test-secret"


def _make_settings(**overrides) -> Settings:
    """Settings isolated from the real environment's per-repo overrides."""
    values = {
        "webhook_secret": TEST_SECRET,
        "discord_webhook": "",
        "deploy_commands": "",
        "work_dir": "",
        "repo_commands": {},
        "repo_work_dirs": {},
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def make_settings():
    return _make_settings


@pytest.fixture
def settings() -> Settings:
    return _make_settings()


@pytest.fixture
def signed_request():
    """Build (body, headers) for a payload signed with the test secret."""

    def _signed(payload: dict, event: str | None = None, secret: str = TEST_SECRET):
        body = json.dumps(payload).encode()
        headers = {"X-Hub-Signature-256": compute_signature(body, secret)}
        if event:
            headers["X-GitHub-Event"] = event
        return body, headers

    return _signed


@pytest.fixture
def push_payload() -> dict:
    return {
        "repository": {
            "name": "my-api",
            "full_name": "acme/my-api",
            "html_url": "https://github.com/acme/my-api",
        },
        "pusher": {"name": "octocat", "email": "octocat@example.com"},
        "head_commit": {
            "id": "abcdef1234567890",
            "message": "Fix login redirect",
            "url": "https://github.com/acme/my-api/commit/abcdef1234567890",
        },
        "ref": "refs/heads/main",
    }


@pytest.fixture
def workflow_payload() -> dict:
    return {
        "repository": {"full_name": "acme/shop"},
        "docker": {
            "registry": "ghcr.io",
            "image_name": "shop",
            "latest_tag": "latest",
            "versioned_tag": "v1.4.0",
            "latest_image": "ghcr.io/acme/shop:latest",
            "versioned_image": "ghcr.io/acme/shop:v1.4.0",
            "pull_command": "docker pull ghcr.io/acme/shop:latest",
        },
        "deployment": {
            "environment": "production",
            "branch": "main",
            "commit": "0123456789abcdef",
            "timestamp": "2024-05-01T10:00:00Z",
        },
    }


@pytest.fixture
def package_payload() -> dict:
    return {
        "action": "published",
        "repository": {"full_name": "acme/shop"},
        "package": {
            "name": "shop",
            "package_version": {"version": "1.4.0"},
            "registry": {"name": "GitHub CR", "type": "container", "url": "https://ghcr.io"},
        },
    }
