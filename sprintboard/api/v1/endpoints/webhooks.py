# sprintboard/api/v1/endpoints/webhooks.py
"""Inbound webhooks from CI and GitHub"""
import json
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from pydantic import ValidationError

from sprintboard.api.deps import get_gateway
from sprintboard.api.v1.schemas.deployments import DeploymentStatusUpdate, DeploymentRead
from sprintboard.api.v1.schemas.webhooks import GithubPullRequestEvent, WebhookResult
from sprintboard.core import tracing
from sprintboard.core.config import settings
from sprintboard.exceptions.store import WebhookSignatureError
from sprintboard.services.gateway import MutationGateway
from sprintboard.services.github import verify_signature

router = APIRouter()


@router.post("/deployment", response_model=DeploymentRead)
async def deployment_status_webhook(
        update: DeploymentStatusUpdate,
        gateway: MutationGateway = Depends(get_gateway)
):
    """CI reports a new status for a deployment"""
    return await gateway.update_deployment_status(update.deployment_id, update.status)


@router.post("/github", response_model=WebhookResult, response_model_by_alias=True)
async def github_webhook(
        request: Request,
        x_github_event: Optional[str] = Header(None),
        x_hub_signature_256: Optional[str] = Header(None),
        gateway: MutationGateway = Depends(get_gateway)
):
    """
    Pull request lifecycle events update the CI badge of linked tasks.
    Every other event, and pull request payloads we cannot read, are
    acknowledged and ignored.
    """
    body = await request.body()

    if settings.GITHUB_WEBHOOK_SECRET is not None:
        secret = settings.GITHUB_WEBHOOK_SECRET.get_secret_value()
        if not verify_signature(secret, body, x_hub_signature_256):
            raise WebhookSignatureError()

    if x_github_event != "pull_request":
        tracing.debug("Ignoring GitHub event", github_event=x_github_event)
        return WebhookResult()

    try:
        event = GithubPullRequestEvent.model_validate(json.loads(body or b"null"))
    except (ValueError, ValidationError) as e:
        tracing.warning("Ignoring unreadable pull_request payload", error=str(e))
        return WebhookResult()

    updated = await gateway.ingest_pull_request_event(event)
    return WebhookResult(processed=True, updated_tasks=len(updated))
