"""Deploy → notify pipeline run after the webhook response has been sent."""

import asyncio
import contextlib
import logging
from dataclasses import dataclass

from deploy_hook.deploy.executor import DeploymentExecutor
from deploy_hook.notify.discord import DiscordNotifier
from deploy_hook.webhook.models import EventType, WebhookPayload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeploymentResult:
    success: bool
    payload: WebhookPayload
    event_type: EventType


class RepositoryLocks:
    """One asyncio.Lock per repository so deployments of the same repository
    never interleave their commands."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}  # holders + waiters per repository

    def __len__(self) -> int:
        return len(self._locks)

    @contextlib.asynccontextmanager
    async def hold(self, full_name: str):
        lock = self._locks.get(full_name)
        if lock is None:
            lock = self._locks[full_name] = asyncio.Lock()
        elif lock.locked():
            logger.info("Deployment for %s already running, waiting", full_name)
        self._users[full_name] = self._users.get(full_name, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[full_name] -= 1
            if not self._users[full_name]:
                del self._users[full_name]
                del self._locks[full_name]


class DeploymentPipeline:
    def __init__(
        self,
        executor: DeploymentExecutor,
        notifier: DiscordNotifier,
        *,
        serialize: bool = True,
    ) -> None:
        self._executor = executor
        self._notifier = notifier
        self._locks = RepositoryLocks() if serialize else None

    def _guard(self, full_name: str):
        if self._locks is None:
            return contextlib.nullcontext()
        return self._locks.hold(full_name)

    async def run(self, payload: WebhookPayload, event_type: EventType) -> DeploymentResult:
        """Execute the deployment, then report it.

        An error raised while deploying counts as a failed deployment and is
        still reported.
        """
        async with self._guard(payload.full_name):
            try:
                success = await self._executor.execute(payload)
            except Exception:
                logger.exception("Error executing deployment for %s", payload.full_name)
                success = False

        result = DeploymentResult(success=success, payload=payload, event_type=event_type)
        await self._notifier.notify(result.payload, result.success, result.event_type)
        return result

    async def run_detached(self, payload: WebhookPayload, event_type: EventType) -> None:
        """Background entry point: failures end up in the log, nowhere else."""
        try:
            await self.run(payload, event_type)
        except Exception:
            logger.exception(
                "Error running %s deployment for %s", event_type.value, payload.full_name
            )
