"""
CloudFormation change set task.
"""

from .change_set import ChangeSetOrchestrator, create_session, describe_change_set, run
from .errors import ChangeSetTaskError
from .templates import TemplateResolver, TemplateSource, parse_s3_url

__all__ = [
    "ChangeSetOrchestrator",
    "ChangeSetTaskError",
    "TemplateResolver",
    "TemplateSource",
    "create_session",
    "describe_change_set",
    "parse_s3_url",
    "run",
]
