# sprintboard/api/v1/schemas/webhooks.py
"""Inbound GitHub webhook payloads (GitHub's own snake_case field names)"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class GithubPullRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    number: int = Field(..., ge=1)
    html_url: Optional[str] = None
    state: Optional[str] = None
    merged: Optional[bool] = False


class GithubPullRequestEvent(BaseModel):
    """The subset of a `pull_request` event the board reacts to"""
    model_config = ConfigDict(extra="ignore")

    action: str
    pull_request: GithubPullRequest


class WebhookResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    processed: bool = False
    updated_tasks: int = Field(0, alias="updatedTasks")
