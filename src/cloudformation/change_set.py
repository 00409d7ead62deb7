"""
Create and optionally execute a CloudFormation change set.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

import task_host
from config import ChangeSetType, TaskParameters

from .errors import (
    ChangeSetCreationError,
    ChangeSetValidationError,
    ExecutionError,
    StackCompletionError,
)
from .templates import TemplateResolver, TemplateSource

logger = logging.getLogger(__name__)


def create_session(parameters: TaskParameters) -> boto3.Session:
    """Create an AWS session scoped to the task's credentials and region."""
    session_args: Dict[str, Any] = {"region_name": parameters.aws_region}
    if parameters.aws_key_id:
        session_args["aws_access_key_id"] = parameters.aws_key_id
        session_args["aws_secret_access_key"] = parameters.aws_secret_key
    elif parameters.aws_profile:
        session_args["profile_name"] = parameters.aws_profile
    return boto3.Session(**session_args)


class ChangeSetOrchestrator:
    """Run one create (and optional execute) cycle for a change set."""

    def __init__(self, parameters: TaskParameters, session: Optional[boto3.Session] = None):
        """
        Initialize the orchestrator.

        Args:
            parameters: Task parameters for this invocation
            session: AWS session to build clients from; created from the
                parameters when not given
        """
        self.parameters = parameters

        session = session or create_session(parameters)
        self.cloudformation = session.client("cloudformation")
        self.s3 = session.client("s3")
        self.templates = TemplateResolver(self.s3)

    @property
    def waiter_config(self) -> Dict[str, int]:
        return {
            "Delay": self.parameters.waiter_delay,
            "MaxAttempts": self.parameters.waiter_max_attempts,
        }

    def resolve_template(self) -> TemplateSource:
        """Resolve the template for the configured template location."""
        return self.templates.resolve(self.parameters)

    def build_request(self, source: TemplateSource) -> Dict[str, Any]:
        """Build create_change_set arguments, leaving out unset optional fields."""
        params = self.parameters
        request: Dict[str, Any] = {
            "ChangeSetName": params.change_set_name,
            "ChangeSetType": params.change_set_type.value,
            "StackName": params.stack_name,
        }
        request.update(source.request_arguments())

        if params.description:
            request["Description"] = params.description
        if params.notification_arns:
            request["NotificationARNs"] = list(params.notification_arns)
        if params.resource_types:
            request["ResourceTypes"] = list(params.resource_types)
        if params.role_arn:
            request["RoleARN"] = params.role_arn
        return request

    def submit_change_set(self, request: Dict[str, Any]) -> str:
        """Create the change set and wait for it to validate.

        Returns:
            The stack id the change set belongs to
        """
        change_set_name = request["ChangeSetName"]
        logger.info(f"Creating change set {change_set_name} for stack {request['StackName']}")

        try:
            response = self.cloudformation.create_change_set(**request)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Change set creation failed: {e}")
            raise ChangeSetCreationError(change_set_name, str(e)) from e

        stack_id = response["StackId"]
        logger.debug(f"Change set id {response.get('Id')}, stack id {stack_id}")

        self.wait_for_change_set(change_set_name, stack_id)
        return str(stack_id)

    def wait_for_change_set(self, change_set_name: str, stack_id: str) -> None:
        """Block until the change set reaches CREATE_COMPLETE."""
        logger.info(f"Waiting for change set {change_set_name} to be validated...")

        try:
            waiter = self.cloudformation.get_waiter("change_set_create_complete")
            waiter.wait(
                ChangeSetName=change_set_name,
                StackName=stack_id,
                WaiterConfig=self.waiter_config,
            )
        except (WaiterError, BotoCoreError) as e:
            reason = self._change_set_status_reason(change_set_name, stack_id, e)
            logger.error(f"Change set {change_set_name} validation failed: {reason}")
            raise ChangeSetValidationError(change_set_name, reason) from e

        logger.info("Change set validated")
        self._log_change_summary(change_set_name, stack_id)

    def execute_change_set(self, change_set_name: str, stack_name: str) -> None:
        """Execute a validated change set and wait for the stack to complete."""
        logger.info(f"Executing change set {change_set_name} on stack {stack_name}")

        try:
            self.cloudformation.execute_change_set(
                ChangeSetName=change_set_name, StackName=stack_name
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Execute change set failed: {e}")
            raise ExecutionError(change_set_name, str(e)) from e

        self.wait_for_stack(stack_name)

    def wait_for_stack(self, stack_name: str) -> None:
        """Block until the stack reaches CREATE_COMPLETE or UPDATE_COMPLETE."""
        operation = "create" if self.parameters.change_set_type == ChangeSetType.CREATE else "update"
        logger.info(f"Waiting for stack {stack_name} {operation} to complete...")

        try:
            waiter = self.cloudformation.get_waiter(f"stack_{operation}_complete")
            waiter.wait(StackName=stack_name, WaiterConfig=self.waiter_config)
        except (WaiterError, BotoCoreError) as e:
            logger.error(f"Stack {operation} failed: {e}")
            self._log_first_failure(stack_name)
            raise StackCompletionError(stack_name, str(e)) from e

        logger.info("Change set executed")

    def run(self) -> str:
        """Resolve, create, optionally execute, then publish the stack id."""
        params = self.parameters

        source = self.resolve_template()
        request = self.build_request(source)
        stack_id = self.submit_change_set(request)

        if params.auto_execute:
            self.execute_change_set(params.change_set_name, params.stack_name)

        if params.output_variable:
            logger.info(f"Setting output variable {params.output_variable} with the stack ID")
            task_host.set_variable(params.output_variable, stack_id)

        logger.info(f"Change set {params.change_set_name} completed for stack {stack_id}")
        return stack_id

    def _change_set_status_reason(
        self, change_set_name: str, stack_id: str, error: BotoCoreError
    ) -> str:
        """Best available explanation for a failed change set wait."""
        last_response = getattr(error, "last_response", None) or {}
        reason = last_response.get("StatusReason")
        if reason:
            return str(reason)

        try:
            response = self.cloudformation.describe_change_set(
                ChangeSetName=change_set_name, StackName=stack_id
            )
            if response.get("StatusReason"):
                return f"{response.get('Status')}: {response['StatusReason']}"
        except (ClientError, BotoCoreError) as describe_error:
            logger.warning(f"Could not describe change set: {describe_error}")

        return str(error)

    def _log_change_summary(self, change_set_name: str, stack_id: str) -> None:
        try:
            _, changes = _describe_all_changes(self.cloudformation, change_set_name, stack_id)
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Could not describe change set: {e}")
            return

        for change in changes:
            resource = change.get("ResourceChange", {})
            logger.info(
                f"  {resource.get('Action', '?')} {resource.get('LogicalResourceId', '?')}"
                f" ({resource.get('ResourceType', '?')})"
            )
        logger.info(f"Change set contains {len(changes)} resource changes")

    def _log_first_failure(self, stack_name: str) -> None:
        """Log the first failed resource event of a stack."""
        try:
            response = self.cloudformation.describe_stack_events(StackName=stack_name)
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Could not retrieve stack events: {e}")
            return

        for event in response.get("StackEvents", []):
            if "FAILED" in event.get("ResourceStatus", ""):
                logger.error(
                    f"Resource {event['LogicalResourceId']} ({event['ResourceType']}) failed: "
                    f"{event.get('ResourceStatusReason', 'No reason provided')}"
                )
                break


def _describe_all_changes(
    cloudformation: Any, change_set_name: str, stack_name: str
) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """Describe a change set, following NextToken until every change is read."""
    response = cloudformation.describe_change_set(
        ChangeSetName=change_set_name, StackName=stack_name
    )
    first_page = response
    changes = list(response.get("Changes", []))

    while response.get("NextToken"):
        response = cloudformation.describe_change_set(
            ChangeSetName=change_set_name,
            StackName=stack_name,
            NextToken=response["NextToken"],
        )
        changes.extend(response.get("Changes", []))

    return first_page, changes


def run(parameters: TaskParameters, session: Optional[boto3.Session] = None) -> str:
    """Create (and optionally execute) the change set described by the parameters."""
    parameters.validate()
    return ChangeSetOrchestrator(parameters, session=session).run()


def describe_change_set(
    parameters: TaskParameters, session: Optional[boto3.Session] = None
) -> Dict[str, Any]:
    """Summarise an existing change set: status, reason and resource changes."""
    session = session or create_session(parameters)
    cloudformation = session.client("cloudformation")

    response, all_changes = _describe_all_changes(
        cloudformation, parameters.change_set_name, parameters.stack_name
    )
    changes = []
    for change in all_changes:
        resource = change.get("ResourceChange", {})
        changes.append(
            {
                "action": resource.get("Action"),
                "logical_id": resource.get("LogicalResourceId"),
                "resource_type": resource.get("ResourceType"),
                "replacement": resource.get("Replacement"),
            }
        )

    return {
        "change_set_name": response.get("ChangeSetName", parameters.change_set_name),
        "stack_id": response.get("StackId"),
        "status": response.get("Status"),
        "status_reason": response.get("StatusReason"),
        "execution_status": response.get("ExecutionStatus"),
        "changes": changes,
    }
