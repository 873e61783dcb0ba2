"""Aggregates the v1 endpoint routers"""
from fastapi import APIRouter
from .endpoints import auth, users, sprints, tasks, deployments, webhooks

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(sprints.router, prefix="/sprints", tags=["sprints"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(deployments.router, prefix="/deployments", tags=["deployments"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
