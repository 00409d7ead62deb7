"""
Configuration for the create change set task.

Task parameters can come from pipeline task inputs, a YAML task file or a
plain dictionary. Keys use the task input names (``stackName``,
``templateLocation``, ...).
"""

import os
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import yaml

import task_host


class TaskConfigurationError(ValueError):
    """Task inputs are missing or invalid."""


class TemplateLocation(str, Enum):
    """Where the template for the change set comes from."""

    LINKED_ARTIFACT = "LinkedArtifact"
    FILE_URL = "FileURL"
    USE_PREVIOUS = "UsePrevious"


class ChangeSetType(str, Enum):
    """Whether the change set creates a new stack or updates an existing one."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"


# Task input name -> TaskParameters attribute
INPUT_NAMES = {
    "awsAccessKeyId": "aws_key_id",
    "awsSecretAccessKey": "aws_secret_key",
    "awsProfile": "aws_profile",
    "regionName": "aws_region",
    "stackName": "stack_name",
    "changeSetName": "change_set_name",
    "changeSetType": "change_set_type",
    "templateLocation": "template_location",
    "cfTemplateFile": "cf_template_file",
    "cfTemplateUrl": "cf_template_url",
    "cfParametersFile": "cf_parameters_file",
    "cfParametersFileUrl": "cf_parameters_file_url",
    "description": "description",
    "notificationARNs": "notification_arns",
    "resourceTypes": "resource_types",
    "roleARN": "role_arn",
    "autoExecute": "auto_execute",
    "outputVariable": "output_variable",
    "waiterDelay": "waiter_delay",
    "waiterMaxAttempts": "waiter_max_attempts",
}

LIST_INPUTS = ("notificationARNs", "resourceTypes")
LIST_ATTRS = ("notification_arns", "resource_types")
BOOL_INPUTS = ("autoExecute",)


@dataclass(frozen=True)
class TaskParameters:
    """Inputs for one change set task invocation."""

    stack_name: str
    change_set_name: str
    aws_region: Optional[str] = None

    # Credentials; the default boto3 chain is used when neither is set
    aws_key_id: Optional[str] = None
    aws_secret_key: Optional[str] = None
    aws_profile: Optional[str] = None

    change_set_type: ChangeSetType = ChangeSetType.CREATE
    template_location: TemplateLocation = TemplateLocation.LINKED_ARTIFACT
    cf_template_file: Optional[str] = None
    cf_template_url: Optional[str] = None
    cf_parameters_file: Optional[str] = None
    cf_parameters_file_url: Optional[str] = None

    description: Optional[str] = None
    notification_arns: Tuple[str, ...] = ()
    resource_types: Tuple[str, ...] = ()
    role_arn: Optional[str] = None

    auto_execute: bool = False
    output_variable: Optional[str] = None

    waiter_delay: int = 30
    waiter_max_attempts: int = 120

    def __post_init__(self) -> None:
        for attr in LIST_ATTRS:
            object.__setattr__(self, attr, tuple(getattr(self, attr)))

        # Modes and types arrive as plain strings from inputs and YAML
        try:
            object.__setattr__(
                self, "template_location", TemplateLocation(self.template_location)
            )
        except ValueError:
            # Left as given; the orchestrator reports it as an unknown mode
            pass
        change_set_type = self.change_set_type
        if not isinstance(change_set_type, ChangeSetType):
            change_set_type = str(change_set_type).upper()
        try:
            object.__setattr__(self, "change_set_type", ChangeSetType(change_set_type))
        except ValueError:
            raise TaskConfigurationError(
                f"Invalid changeSetType '{self.change_set_type}', expected CREATE or UPDATE"
            )

    def validate(self) -> "TaskParameters":
        """Check required inputs, raising TaskConfigurationError on the first problem."""
        if not self.stack_name:
            raise TaskConfigurationError("Input required: stackName")
        if not self.change_set_name:
            raise TaskConfigurationError("Input required: changeSetName")
        if not self.aws_region:
            raise TaskConfigurationError("Input required: regionName")
        if bool(self.aws_key_id) != bool(self.aws_secret_key):
            raise TaskConfigurationError(
                "awsAccessKeyId and awsSecretAccessKey must be supplied together"
            )
        if self.template_location == TemplateLocation.LINKED_ARTIFACT and not self.cf_template_file:
            raise TaskConfigurationError("Input required: cfTemplateFile")
        if self.template_location == TemplateLocation.FILE_URL and not self.cf_template_url:
            raise TaskConfigurationError("Input required: cfTemplateUrl")
        if self.waiter_delay < 1 or self.waiter_max_attempts < 1:
            raise TaskConfigurationError("waiterDelay and waiterMaxAttempts must be positive")
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert parameters to a dictionary keyed by task input name."""
        data: Dict[str, Any] = {}
        for input_name, attr in INPUT_NAMES.items():
            value = getattr(self, attr)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, tuple):
                value = list(value)
            data[input_name] = value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TaskParameters":
        """Create parameters from a mapping keyed by task input name."""
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            attr = INPUT_NAMES.get(key, key)
            if attr not in known:
                raise TaskConfigurationError(f"Unknown task input: {key}")
            if value is None:
                continue
            if attr in LIST_ATTRS:
                if isinstance(value, str):
                    value = [v.strip() for v in value.replace("\n", ",").split(",") if v.strip()]
                value = tuple(value)
            elif attr == "auto_execute" and isinstance(value, str):
                value = value.strip().lower() in task_host.TRUE_VALUES
            elif attr in ("waiter_delay", "waiter_max_attempts"):
                try:
                    value = int(value)
                except (TypeError, ValueError):
                    raise TaskConfigurationError(
                        f"Input {key} must be an integer, got '{value}'"
                    )
            kwargs[attr] = value

        for required in ("stack_name", "change_set_name"):
            kwargs.setdefault(required, "")
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "TaskParameters":
        """Load parameters from a YAML task file."""
        config_file = Path(path)
        if not config_file.exists():
            raise TaskConfigurationError(f"Task file not found: {config_file}")

        with open(config_file, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise TaskConfigurationError(f"Task file {config_file} must contain a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_task_inputs(cls, environ: Optional[Mapping[str, str]] = None) -> "TaskParameters":
        """Build parameters from the pipeline agent's task inputs."""
        environ = os.environ if environ is None else environ
        data: Dict[str, Any] = {}

        for input_name in INPUT_NAMES:
            if input_name in LIST_INPUTS:
                data[input_name] = task_host.get_delimited_input(input_name, environ=environ)
            elif input_name in BOOL_INPUTS:
                data[input_name] = task_host.get_bool_input(input_name, environ=environ)
            else:
                data[input_name] = task_host.get_input(input_name, environ=environ)

        # Fall back to the standard AWS environment variables
        data["awsAccessKeyId"] = data["awsAccessKeyId"] or environ.get("AWS_ACCESS_KEY_ID")
        data["awsSecretAccessKey"] = data["awsSecretAccessKey"] or environ.get(
            "AWS_SECRET_ACCESS_KEY"
        )
        data["regionName"] = (
            data["regionName"] or environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION")
        )
        return cls.from_dict(data)
