# sprintboard/realtime/events.py
"""Push channel messages.

Every server frame is `{type, data, timestamp}`; `type` selects the payload
model, so receivers validate a frame into exactly one of these classes
instead of guessing the shape of `data`.
"""
import time
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import Field, TypeAdapter
from typing_extensions import Annotated

from sprintboard.api.v1.schemas.common import CamelModel
from sprintboard.api.v1.schemas.deployments import DeploymentRead
from sprintboard.api.v1.schemas.sprints import SprintRead
from sprintboard.api.v1.schemas.tasks import TaskDetail
from sprintboard.db.models.enums import TaskStatus


def now_ms() -> int:
    """Epoch milliseconds"""
    return int(time.time() * 1000)


class EventType(str, Enum):
    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"
    TASK_STATUS_CHANGED = "task_status_changed"
    TASK_DELETED = "task_deleted"
    SPRINT_CREATED = "sprint_created"
    SPRINT_UPDATED = "sprint_updated"
    SPRINT_HACKATHON_MODE_TOGGLED = "sprint_hackathon_mode_toggled"
    DEPLOYMENT_CREATED = "deployment_created"
    DEPLOYMENT_STATUS_UPDATED = "deployment_status_updated"


# Payloads

class TaskStatusChanged(CamelModel):
    task_id: int
    old_status: TaskStatus
    new_status: TaskStatus
    task: TaskDetail


class TaskDeleted(CamelModel):
    task_id: int
    task_details: TaskDetail


class SprintHackathonModeToggled(CamelModel):
    sprint_id: int
    hackathon_mode: bool
    previous_hackathon_mode: bool
    sprint: SprintRead


class DeploymentCreated(CamelModel):
    deployment: DeploymentRead
    task: TaskDetail


# Envelopes

class Envelope(CamelModel):
    timestamp: int = Field(default_factory=now_ms)

    def to_frame(self) -> str:
        return self.model_dump_json(by_alias=True)


class TaskCreatedEvent(Envelope):
    type: Literal["task_created"] = "task_created"
    data: TaskDetail


class TaskUpdatedEvent(Envelope):
    type: Literal["task_updated"] = "task_updated"
    data: TaskDetail


class TaskStatusChangedEvent(Envelope):
    type: Literal["task_status_changed"] = "task_status_changed"
    data: TaskStatusChanged


class TaskDeletedEvent(Envelope):
    type: Literal["task_deleted"] = "task_deleted"
    data: TaskDeleted


class SprintCreatedEvent(Envelope):
    type: Literal["sprint_created"] = "sprint_created"
    data: SprintRead


class SprintUpdatedEvent(Envelope):
    type: Literal["sprint_updated"] = "sprint_updated"
    data: SprintRead


class SprintHackathonModeToggledEvent(Envelope):
    type: Literal["sprint_hackathon_mode_toggled"] = "sprint_hackathon_mode_toggled"
    data: SprintHackathonModeToggled


class DeploymentCreatedEvent(Envelope):
    type: Literal["deployment_created"] = "deployment_created"
    data: DeploymentCreated


class DeploymentStatusUpdatedEvent(Envelope):
    type: Literal["deployment_status_updated"] = "deployment_status_updated"
    data: DeploymentRead


class ConnectedMessage(Envelope):
    """Handshake sent as soon as a viewer is registered"""
    type: Literal["connected"] = "connected"


class PongMessage(Envelope):
    """Liveness reply to a client ping; not a state event"""
    type: Literal["pong"] = "pong"


class PingMessage(CamelModel):
    """The only frame a client sends"""
    type: Literal["ping"]
    timestamp: Optional[int] = None


ChangeEvent = Annotated[
    Union[
        TaskCreatedEvent,
        TaskUpdatedEvent,
        TaskStatusChangedEvent,
        TaskDeletedEvent,
        SprintCreatedEvent,
        SprintUpdatedEvent,
        SprintHackathonModeToggledEvent,
        DeploymentCreatedEvent,
        DeploymentStatusUpdatedEvent,
    ],
    Field(discriminator="type"),
]

ServerMessage = Annotated[
    Union[
        TaskCreatedEvent,
        TaskUpdatedEvent,
        TaskStatusChangedEvent,
        TaskDeletedEvent,
        SprintCreatedEvent,
        SprintUpdatedEvent,
        SprintHackathonModeToggledEvent,
        DeploymentCreatedEvent,
        DeploymentStatusUpdatedEvent,
        ConnectedMessage,
        PongMessage,
    ],
    Field(discriminator="type"),
]

server_message_adapter: TypeAdapter = TypeAdapter(ServerMessage)


def parse_server_frame(frame: Union[str, bytes]):
    """Validate a raw frame into its message class; raises pydantic.ValidationError"""
    return server_message_adapter.validate_json(frame)
