"""Database models"""
from app.models.user import User, Role, RoleName
from app.models.organization import College, Department
from app.models.workflow import Workflow, WorkflowStep
from app.models.form_template import FormTemplate
from app.models.request import Request, RequestStatus, RequestKind
from app.models.request_action import RequestAction, ActionType
from app.models.delegation import Delegation
from app.models.attachment import Attachment
from app.models.notification import Notification
from app.models.audit_log import AuditLog

__all__ = [
    "User",
    "Role",
    "RoleName",
    "College",
    "Department",
    "Workflow",
    "WorkflowStep",
    "FormTemplate",
    "Request",
    "RequestStatus",
    "RequestKind",
    "RequestAction",
    "ActionType",
    "Delegation",
    "Attachment",
    "Notification",
    "AuditLog",
]
