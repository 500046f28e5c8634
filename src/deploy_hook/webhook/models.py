"""Pydantic models for inbound deployment webhook payloads.

A single request body may carry any of three shapes:
- a GitHub push event (repository, pusher, head_commit, ref)
- a GitHub package event (package, action)
- a custom workflow payload sent from GitHub Actions (docker, deployment)

Every field is optional; the classifier decides which shape applies.
"""

from enum import Enum

from pydantic import BaseModel, Field, field_validator


class EventType(str, Enum):
    PUSH = "push"
    PACKAGE = "package"
    WORKFLOW = "workflow"
    UNKNOWN = "unknown"


class Repository(BaseModel):
    name: str | None = None
    full_name: str | None = None
    html_url: str | None = None


class Pusher(BaseModel):
    name: str | None = None
    email: str | None = None


class HeadCommit(BaseModel):
    id: str | None = None
    message: str | None = None
    url: str | None = None


class Registry(BaseModel):
    name: str | None = None
    type: str | None = None
    url: str | None = None


class Package(BaseModel):
    name: str | None = None
    package_version: str | None = None
    registry: Registry = Field(default_factory=Registry)

    @field_validator("package_version", mode="before")
    @classmethod
    def _version_string(cls, value):
        # GitHub sends {"version": "1.2.3", ...}; workflow senders send a plain string
        if isinstance(value, dict):
            return value.get("version")
        return value

    @field_validator("registry", mode="before")
    @classmethod
    def _registry_or_empty(cls, value):
        return {} if value is None else value


class Docker(BaseModel):
    registry: str | None = None
    image_name: str | None = None
    latest_tag: str | None = None
    versioned_tag: str | None = None
    latest_image: str | None = None
    versioned_image: str | None = None
    pull_command: str | None = None


class Deployment(BaseModel):
    environment: str | None = None
    branch: str | None = None
    commit: str | None = None
    timestamp: str | None = None


class WebhookPayload(BaseModel):
    """Top-level deployment webhook payload."""

    repository: Repository = Field(default_factory=Repository)
    pusher: Pusher = Field(default_factory=Pusher)
    head_commit: HeadCommit = Field(default_factory=HeadCommit)
    ref: str | None = None

    package: Package = Field(default_factory=Package)
    action: str | None = None  # "published" for package events

    docker: Docker = Field(default_factory=Docker)
    deployment: Deployment = Field(default_factory=Deployment)

    @field_validator(
        "repository", "pusher", "head_commit", "package", "docker", "deployment",
        mode="before",
    )
    @classmethod
    def _section_or_empty(cls, value):
        # A null section (e.g. head_commit on branch deletion) is an empty one
        return {} if value is None else value

    @property
    def full_name(self) -> str:
        return self.repository.full_name or ""
