# sprintboard/db/models/enums.py
import enum


class TaskStatus(str, enum.Enum):
    """Board columns, declared in workflow order"""
    BACKLOG = "backlog"
    TODO = "todo"
    IN_PROGRESS = "inprogress"
    REVIEW = "review"
    DONE = "done"

    @property
    def position(self) -> int:
        return list(TaskStatus).index(self)


class TaskType(str, enum.Enum):
    FRONTEND = "frontend"
    BACKEND = "backend"
    INTEGRATION = "integration"
    RESEARCH = "research"
    BUGFIX = "bugfix"
    DESIGN = "design"
    DOCUMENTATION = "documentation"
    TESTING = "testing"
    OTHER = "other"


class DeploymentStatus(str, enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"
    SKIPPED = "skipped"

    @property
    def is_completed(self) -> bool:
        return self in COMPLETED_DEPLOYMENT_STATUSES


COMPLETED_DEPLOYMENT_STATUSES = frozenset({
    DeploymentStatus.SUCCESS,
    DeploymentStatus.FAILED,
    DeploymentStatus.CANCELED,
})


class CiStatus(str, enum.Enum):
    """CI badge values the dashboard knows how to render; stored as free text"""
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    MERGED = "merged"
    CLOSED = "closed"


def enum_values(enum_cls):
    """Persist enum values rather than member names"""
    return [member.value for member in enum_cls]
