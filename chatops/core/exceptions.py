"""Error taxonomy of the chat command pipeline.

Every failure a command can hit is raised as a ``ChatOpsError`` subclass that
carries its ``Outcome``. The dispatcher catches them in one place, logs the
context and turns the outcome into a fixed chat reply.
"""

from enum import Enum
from typing import List, Optional


class Outcome(str, Enum):
    OK = "ok"
    IGNORED = "ignored"
    NOT_A_COMMAND = "not_a_command"
    UNRECOGNIZED = "unrecognized"
    UNCONFIGURED_CHANNEL = "unconfigured_channel"
    IDENTITY_UNRESOLVED = "identity_unresolved"
    UNAUTHORIZED = "unauthorized"
    MISSING_CONTEXT = "missing_context"
    PARSE_INCOMPLETE = "parse_incomplete"
    DOMAIN_CALL_FAILED = "domain_call_failed"
    REFERENCE_NOT_FOUND = "reference_not_found"
    NOT_FOUND = "not_found"
    INTERNAL_ERROR = "internal_error"


class ChatOpsError(Exception):
    outcome: Outcome = Outcome.INTERNAL_ERROR


class UnconfiguredChannelError(ChatOpsError):
    outcome = Outcome.UNCONFIGURED_CHANNEL


class IdentityUnresolvedError(ChatOpsError):
    outcome = Outcome.IDENTITY_UNRESOLVED


class UnauthorizedError(ChatOpsError):
    outcome = Outcome.UNAUTHORIZED

    def __init__(self, permission: Optional[str] = None):
        super().__init__(f"missing permission {permission}" if permission else "not a project member")
        self.permission = permission


class MissingContextError(ChatOpsError):
    outcome = Outcome.MISSING_CONTEXT


class ParseIncompleteError(ChatOpsError):
    outcome = Outcome.PARSE_INCOMPLETE

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class TestCaseNotFoundError(ChatOpsError):
    outcome = Outcome.NOT_FOUND

    def __init__(self, short_id: str):
        super().__init__(short_id)
        self.short_id = short_id


class DomainServiceError(ChatOpsError):
    """Raised by the domain API client on transport errors and non-2xx responses."""

    outcome = Outcome.DOMAIN_CALL_FAILED

    def __init__(self, operation: str, detail: str, status_code: Optional[int] = None):
        super().__init__(f"{operation} failed: {detail}")
        self.operation = operation
        self.detail = detail
        self.status_code = status_code


# Binding registry errors; surfaced by the admin API, not the chat pipeline

class ProjectNotFoundError(Exception):
    def __init__(self, project_id: str):
        super().__init__(f"Project {project_id} not found")
        self.project_id = project_id


class BindingNotFoundError(Exception):
    def __init__(self, channel_id: str):
        super().__init__(f"Channel {channel_id} is not configured")
        self.channel_id = channel_id


# Chat transport errors; surfaced by the chat route

class InvalidChannelTokenError(Exception):
    """Inbound Bot Framework request whose bearer token does not verify"""


class ReplyDeliveryError(Exception):
    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(f"Reply delivery failed: {detail}")
        self.detail = detail
        self.status_code = status_code
