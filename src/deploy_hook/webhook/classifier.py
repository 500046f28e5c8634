import logging

from deploy_hook.webhook.models import EventType, WebhookPayload

logger = logging.getLogger(__name__)


def classify_payload(payload: WebhookPayload, event_header: str | None) -> EventType:
    """Decide which payload shape is authoritative. First match wins.

    1. workflow: docker image name and deployment environment are both set
    2. package: X-GitHub-Event is "package" and the action is "published"
    3. push: X-GitHub-Event is "push" or the payload carries a ref
    """
    if payload.docker.image_name and payload.deployment.environment:
        logger.info(
            "Received workflow webhook for repository: %s, environment: %s, image: %s",
            payload.full_name, payload.deployment.environment, payload.docker.latest_image,
        )
        return EventType.WORKFLOW

    if event_header == "package" and payload.action == "published":
        logger.info(
            "Received package webhook for repository: %s, package: %s@%s",
            payload.full_name, payload.package.name, payload.package.package_version,
        )
        return EventType.PACKAGE

    if event_header == "push" or payload.ref:
        logger.info("Received push webhook for repository: %s, ref: %s", payload.full_name, payload.ref)
        return EventType.PUSH

    logger.info("Unknown payload type for repository: %s", payload.full_name)
    return EventType.UNKNOWN
