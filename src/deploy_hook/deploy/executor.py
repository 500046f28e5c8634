"""Run a deployment's commands on the host, strictly in order."""

import asyncio
import logging
import os
from dataclasses import dataclass

from deploy_hook.deploy.resolver import CommandResolver, DeploymentPlan
from deploy_hook.webhook.models import WebhookPayload

logger = logging.getLogger(__name__)

# Exit status reported when the executable itself could not be started
NOT_STARTED_RETURNCODE = 127


@dataclass(frozen=True)
class CommandResult:
    command: str
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def is_tolerated_failure(command: str, output: str) -> bool:
    """Stopping or removing a container that does not exist is not an error."""
    is_cleanup = "docker stop" in command or "docker rm" in command
    return is_cleanup and "no such container" in output.lower()


def usable_working_dir(plan: DeploymentPlan) -> str | None:
    """Working directory to run in, or None.

    Container plans never use one. A configured directory that does not
    exist is dropped rather than failing the deployment.
    """
    if plan.containerized:
        logger.info("Using Docker workflow - no working directory needed")
        return None
    if not plan.working_dir:
        return None
    if not os.path.isdir(plan.working_dir):
        logger.warning(
            "Working directory %s does not exist, continuing without changing directory",
            plan.working_dir,
        )
        return None
    logger.info("Using working directory: %s", plan.working_dir)
    return plan.working_dir


async def run_command(command: str, cwd: str | None = None) -> CommandResult:
    """Run one command with stdout and stderr combined.

    The command is split on whitespace and executed without a shell, so
    quoted arguments are not supported.
    """
    argv = command.split()
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as exc:
        return CommandResult(command, NOT_STARTED_RETURNCODE, str(exc))

    stdout, _ = await proc.communicate()
    return CommandResult(command, proc.returncode, stdout.decode(errors="replace"))


class DeploymentExecutor:
    def __init__(self, resolver: CommandResolver) -> None:
        self._resolver = resolver

    async def execute(self, payload: WebhookPayload) -> bool:
        """Run the resolved commands. Returns True only if every command succeeded
        or failed in a tolerated way."""
        full_name = payload.full_name
        logger.info("Starting deployment for %s", full_name)

        plan = self._resolver.plan(payload)
        if not plan.commands:
            logger.error("No deployment commands configured for %s", full_name)
            return False

        cwd = usable_working_dir(plan)
        return await self.run_commands(plan.commands, cwd, full_name)

    async def run_commands(
        self, commands: tuple[str, ...], cwd: str | None, full_name: str
    ) -> bool:
        for raw in commands:
            command = raw.strip()
            if not command:
                continue

            logger.info("Executing: %s", command)
            result = await run_command(command, cwd)

            if not result.ok:
                if is_tolerated_failure(command, result.output):
                    logger.warning(
                        "Command failed (expected): %s - container doesn't exist, continuing",
                        command,
                    )
                    continue
                logger.error(
                    "Command failed: %s, exit status %d, output: %s",
                    command, result.returncode, result.output.strip(),
                )
                return False

            if result.output.strip():
                logger.info("Command successful: %s\n%s", command, result.output.rstrip())
            else:
                logger.info("Command successful: %s (no output)", command)

        logger.info("Deployment completed successfully for %s", full_name)
        return True
