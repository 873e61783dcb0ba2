# sprintboard/api/deps.py
"""Request-scoped wiring of the gateway and the notifier"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from sprintboard.db.database import get_db
from sprintboard.realtime.notifier import ChangeNotifier
from sprintboard.services.gateway import MutationGateway


def get_notifier(request: Request) -> ChangeNotifier:
    """The notifier owned by the running application"""
    return request.app.state.notifier


def get_gateway(
        db: AsyncSession = Depends(get_db),
        notifier: ChangeNotifier = Depends(get_notifier)
) -> MutationGateway:
    return MutationGateway(db, notifier)
