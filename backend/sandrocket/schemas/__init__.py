from sandrocket.schemas.auth import RegisterRequest, LoginRequest, UserRead, AuthResponse
from sandrocket.schemas.project import (
    ProjectCreate,
    ProjectUpdate,
    ProjectRead,
    ProjectListResponse,
    MemberRead,
    MemberListResponse,
)
from sandrocket.schemas.invitation import (
    InvitationRead,
    InvitationAccept,
    InvitationAcceptResponse,
)
from sandrocket.schemas.epic import EpicCreate, EpicUpdate, EpicRead, EpicListResponse
from sandrocket.schemas.task import TaskCreate, TaskUpdate, TaskReorder, TaskRead, TaskListResponse
from sandrocket.schemas.document import DocumentRead, DocumentActivityRead, DocumentListResponse

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "UserRead",
    "AuthResponse",
    "ProjectCreate",
    "ProjectUpdate",
    "ProjectRead",
    "ProjectListResponse",
    "MemberRead",
    "MemberListResponse",
    "InvitationRead",
    "InvitationAccept",
    "InvitationAcceptResponse",
    "EpicCreate",
    "EpicUpdate",
    "EpicRead",
    "EpicListResponse",
    "TaskCreate",
    "TaskUpdate",
    "TaskReorder",
    "TaskRead",
    "TaskListResponse",
    "DocumentRead",
    "DocumentActivityRead",
    "DocumentListResponse",
]
