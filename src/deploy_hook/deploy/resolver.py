"""Resolve the shell commands a deployment runs.

Resolution order, first non-empty source wins:
1. DEPLOY_COMMANDS_<REPO_KEY> (semicolon-separated)
2. DEPLOY_COMMANDS (semicolon-separated)
3. Auto-detection from marker files in the working directory

Workflow payloads that carry a complete docker section replace all of the
above with a fixed pull/stop/rm/run sequence.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from deploy_hook.config import Settings
from deploy_hook.webhook.models import WebhookPayload

logger = logging.getLogger(__name__)

PRODUCTION_ENVIRONMENT = "production"
PRODUCTION_PORT_BINDING = "8100:8100"
STAGING_PORT_BINDING = "8101:8100"


class ProjectType(Enum):
    GO = "go"
    NODEJS = "nodejs"
    PYTHON = "python"
    PHP = "php"
    JAVA = "java"
    DOTNET = "dotnet"
    DOCKER = "docker"


@dataclass(frozen=True)
class StackCommands:
    """Build and restart commands for one project type.

    ``service_name`` is the systemd unit used when the repository name has no
    owner segment; None means the stack restarts ``fixed_services`` instead.
    """

    markers: tuple[str, ...]
    build: tuple[str, ...]
    service_name: str | None = None
    fixed_services: tuple[str, ...] = ()


# Checked in declaration order; markers containing "*" are globs
STACKS: dict[ProjectType, StackCommands] = {
    ProjectType.GO: StackCommands(
        markers=("go.mod", "main.go"),
        build=("go mod tidy", "go build -o app"),
        service_name="app",
    ),
    ProjectType.NODEJS: StackCommands(
        markers=("package.json",),
        build=("npm ci", "npm run build"),
        service_name="node-app",
    ),
    ProjectType.PYTHON: StackCommands(
        markers=("requirements.txt", "setup.py", "pyproject.toml"),
        build=("pip install -r requirements.txt",),
        service_name="python-app",
    ),
    ProjectType.PHP: StackCommands(
        markers=("composer.json", "index.php"),
        build=("composer install --no-dev --optimize-autoloader",),
        fixed_services=("sudo systemctl restart nginx", "sudo systemctl restart php-fpm"),
    ),
    ProjectType.JAVA: StackCommands(
        markers=("pom.xml", "build.gradle"),
        build=("./mvnw clean package -DskipTests",),
        service_name="java-app",
    ),
    ProjectType.DOTNET: StackCommands(
        markers=("*.csproj", "*.sln"),
        build=(
            "dotnet restore",
            "dotnet build --configuration Release",
            "dotnet publish --configuration Release --output ./publish",
        ),
        service_name="dotnet-app",
    ),
    ProjectType.DOCKER: StackCommands(
        markers=("Dockerfile", "docker-compose.yml"),
        build=(),  # image tag depends on the repository, see _build_commands
        fixed_services=("docker-compose down", "docker-compose up -d"),
    ),
}

DEFAULT_PROJECT_TYPE = ProjectType.GO


@dataclass(frozen=True)
class DeploymentPlan:
    commands: tuple[str, ...]
    working_dir: str = ""
    containerized: bool = False


def split_commands(value: str) -> tuple[str, ...]:
    return tuple(value.split(";"))


def service_name(full_name: str, default: str) -> str:
    """Systemd unit for a repository: "user/my-api" -> "my-api"."""
    parts = full_name.split("/")
    if len(parts) > 1:
        return parts[-1]
    return default


def _marker_present(directory: Path, marker: str) -> bool:
    """A marker that cannot be stat'ed (too long, permission denied) is absent."""
    try:
        if "*" in marker:
            return any(directory.glob(marker))
        return (directory / marker).exists()
    except OSError as exc:
        logger.debug("Cannot check marker %s in %s: %s", marker, directory, exc)
        return False


def detect_project_types(working_dir: str) -> list[ProjectType]:
    """Return every project type whose marker files exist, or the default type."""
    directory = Path(working_dir) if working_dir else Path.cwd()
    types = [
        project_type
        for project_type, stack in STACKS.items()
        if any(_marker_present(directory, marker) for marker in stack.markers)
    ]
    return types or [DEFAULT_PROJECT_TYPE]


class CommandResolver:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def working_dir(self, full_name: str) -> str:
        return self._settings.working_dir(full_name)

    def resolve(self, full_name: str) -> tuple[str, ...]:
        """Commands for a repository from overrides, or auto-detected."""
        override = self._settings.command_override(full_name)
        if override:
            return split_commands(override)
        return self.auto_detect(full_name)

    def auto_detect(self, full_name: str) -> tuple[str, ...]:
        project_types = detect_project_types(self.working_dir(full_name))
        logger.info(
            "Detected project types for %s: %s",
            full_name, ", ".join(t.value for t in project_types),
        )

        build_commands: list[str] = []
        service_commands: list[str] = []
        for project_type in project_types:
            build_commands.extend(self._build_commands(project_type, full_name))
            service_commands.extend(self._service_commands(project_type, full_name))

        fetch = f"git pull origin {self._settings.deploy_branch}"
        return (fetch, *build_commands, *service_commands)

    def _build_commands(self, project_type: ProjectType, full_name: str) -> tuple[str, ...]:
        if project_type is ProjectType.DOCKER:
            return (f"docker build -t {full_name.lower()} .",)
        return STACKS[project_type].build

    def _service_commands(self, project_type: ProjectType, full_name: str) -> tuple[str, ...]:
        stack = STACKS[project_type]
        if stack.service_name is None:
            return stack.fixed_services
        return (f"sudo systemctl restart {service_name(full_name, stack.service_name)}",)

    def container_commands(self, payload: WebhookPayload) -> tuple[str, ...] | None:
        """Fixed container sequence for workflow payloads with complete docker info."""
        docker = payload.docker
        if not (docker.image_name and docker.pull_command and docker.latest_image):
            if docker.image_name or docker.pull_command:
                logger.warning(
                    "Incomplete Docker payload info - ImageName: '%s', PullCommand: '%s', LatestImage: '%s'",
                    docker.image_name, docker.pull_command, docker.latest_image,
                )
            return None

        name = docker.image_name
        if payload.deployment.environment == PRODUCTION_ENVIRONMENT:
            run = f"docker run -d --name {name} -p {PRODUCTION_PORT_BINDING} {docker.latest_image}"
        else:
            run = f"docker run -d --name {name}-staging -p {STAGING_PORT_BINDING} {docker.latest_image}"

        return (
            docker.pull_command,
            f"docker stop {name}",
            f"docker rm {name}",
            run,
        )

    def plan(self, payload: WebhookPayload) -> DeploymentPlan:
        container = self.container_commands(payload)
        if container is not None:
            logger.info(
                "Using Docker commands from workflow payload (image: %s, environment: %s)",
                payload.docker.latest_image, payload.deployment.environment,
            )
            return DeploymentPlan(commands=container, containerized=True)

        full_name = payload.full_name
        return DeploymentPlan(
            commands=self.resolve(full_name),
            working_dir=self.working_dir(full_name),
        )
