# sprintboard/api/v1/endpoints/deployments.py
"""Deployment endpoints, fed by CI"""
from fastapi import APIRouter, Depends, status

from sprintboard.api.deps import get_gateway
from sprintboard.api.v1.schemas.deployments import DeploymentCreate, DeploymentRead
from sprintboard.services.gateway import MutationGateway

router = APIRouter()


@router.post("", response_model=DeploymentRead, status_code=status.HTTP_201_CREATED)
async def create_deployment(deployment_data: DeploymentCreate, gateway: MutationGateway = Depends(get_gateway)):
    """Record a deploy run for a task"""
    return await gateway.create_deployment(deployment_data)
