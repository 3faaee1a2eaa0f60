from polarad_admin.models.user import User
from polarad_admin.models.admin import Admin
from polarad_admin.models.audit_log import AuditLog
from polarad_admin.models.submission import Submission
from polarad_admin.models.workflow import Workflow, WorkflowLog
from polarad_admin.models.design import Design, DesignFeedback, DesignVersion
from polarad_admin.models.package import Package
from polarad_admin.models.contract import Contract, ContractLog, ContractSequence
from polarad_admin.models.client import Client, TokenRefreshLog
from polarad_admin.models.notification_log import NotificationLog
from polarad_admin.models.raw_data import RawData
from polarad_admin.models.communication import CommunicationMessage, CommunicationThread

__all__ = [
    "User",
    "Admin",
    "AuditLog",
    "Submission",
    "Workflow",
    "WorkflowLog",
    "Design",
    "DesignVersion",
    "DesignFeedback",
    "Package",
    "Contract",
    "ContractLog",
    "ContractSequence",
    "Client",
    "TokenRefreshLog",
    "NotificationLog",
    "RawData",
    "CommunicationThread",
    "CommunicationMessage",
]
