from sandrocket.models.user import User
from sandrocket.models.project import Project, ProjectMember, ProjectInvitation, ProjectRole
from sandrocket.models.epic import Epic
from sandrocket.models.task import Task, TaskStatus
from sandrocket.models.document import Document, DocumentActivity, DocumentAction

__all__ = [
    "User",
    "Project",
    "ProjectMember",
    "ProjectInvitation",
    "ProjectRole",
    "Epic",
    "Task",
    "TaskStatus",
    "Document",
    "DocumentActivity",
    "DocumentAction",
]
