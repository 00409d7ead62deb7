#!/usr/bin/env python3
"""
CloudFormation change set CLI commands.
"""

import json
import logging
import sys
from typing import Any, Callable, Dict, Optional, Tuple

import click

import task_host
from cloudformation import ChangeSetTaskError, describe_change_set, run
from config import ChangeSetType, TaskConfigurationError, TaskParameters, TemplateLocation


def configure_logging(verbose: bool) -> None:
    """Send progress lines to stderr, with debug detail when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s" if verbose else "%(message)s",
        stream=sys.stderr,
    )
    # botocore debug output drowns the task's own progress
    logging.getLogger("botocore").setLevel(logging.WARNING)


def run_and_report(
    load_parameters: Callable[[], TaskParameters]
) -> Tuple[TaskParameters, str]:
    """Load parameters, run the change set task and report the result to the agent."""
    try:
        parameters = load_parameters().validate()
        stack_id = run(parameters)
    except Exception as e:
        task_host.set_result(task_host.TaskResult.FAILED, str(e))
        raise
    task_host.set_result(task_host.TaskResult.SUCCEEDED, "")
    return parameters, stack_id


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show debug output")
def main(verbose: bool) -> None:
    """CloudFormation change set commands."""
    configure_logging(verbose)


@main.command("create-change-set")
@click.option("--config", "config_file", type=click.Path(dir_okay=False), help="YAML task file")
@click.option("--stack-name", "-s", help="CloudFormation stack name")
@click.option("--change-set-name", "-c", help="Change set name")
@click.option(
    "--change-set-type",
    type=click.Choice([t.value for t in ChangeSetType], case_sensitive=False),
    help="CREATE for a new stack, UPDATE for an existing one",
)
@click.option(
    "--template-location",
    type=click.Choice([loc.value for loc in TemplateLocation]),
    help="Where the template comes from",
)
@click.option("--template-file", help="Local template file (LinkedArtifact)")
@click.option("--template-url", help="S3 template URL (FileURL)")
@click.option("--parameters-file", help="Local template parameters JSON file")
@click.option("--parameters-url", help="S3 URL of the template parameters JSON file")
@click.option("--description", help="Change set description")
@click.option("--notification-arn", "notification_arns", multiple=True, help="SNS topic ARN")
@click.option("--resource-type", "resource_types", multiple=True, help="Allowed resource type")
@click.option("--role-arn", help="IAM role CloudFormation assumes")
@click.option("--auto-execute/--no-auto-execute", default=None, help="Execute once validated")
@click.option("--output-variable", help="Pipeline variable to receive the stack id")
@click.option("--region", help="AWS region")
@click.option("--profile", help="AWS profile to use")
@click.option("--json", "output_json", is_flag=True, help="Output result as JSON")
def create_change_set(
    config_file: Optional[str],
    stack_name: Optional[str],
    change_set_name: Optional[str],
    change_set_type: Optional[str],
    template_location: Optional[str],
    template_file: Optional[str],
    template_url: Optional[str],
    parameters_file: Optional[str],
    parameters_url: Optional[str],
    description: Optional[str],
    notification_arns: Tuple[str, ...],
    resource_types: Tuple[str, ...],
    role_arn: Optional[str],
    auto_execute: Optional[bool],
    output_variable: Optional[str],
    region: Optional[str],
    profile: Optional[str],
    output_json: bool,
) -> None:
    """Create a change set and optionally execute it."""
    overrides = {
        "stackName": stack_name,
        "changeSetName": change_set_name,
        "changeSetType": change_set_type.upper() if change_set_type else None,
        "templateLocation": template_location,
        "cfTemplateFile": template_file,
        "cfTemplateUrl": template_url,
        "cfParametersFile": parameters_file,
        "cfParametersFileUrl": parameters_url,
        "description": description,
        "notificationARNs": list(notification_arns) or None,
        "resourceTypes": list(resource_types) or None,
        "roleARN": role_arn,
        "autoExecute": auto_execute,
        "outputVariable": output_variable,
        "regionName": region,
        "awsProfile": profile,
    }

    def load_parameters() -> TaskParameters:
        data: Dict[str, Any] = {}
        if config_file:
            data = TaskParameters.from_yaml(config_file).to_dict()
        data.update({key: value for key, value in overrides.items() if value is not None})
        return TaskParameters.from_dict(data)

    try:
        parameters, stack_id = run_and_report(load_parameters)

        if output_json:
            click.echo(
                json.dumps(
                    {"change_set_name": parameters.change_set_name, "stack_id": stack_id},
                    indent=2,
                )
            )
        else:
            click.echo(f"✅ Change set {parameters.change_set_name} ready for stack {stack_id}")

    except (ChangeSetTaskError, TaskConfigurationError) as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command("run-task")
def run_task() -> None:
    """Run the task with inputs supplied by the pipeline agent."""
    try:
        run_and_report(TaskParameters.from_task_inputs)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@main.command("describe-change-set")
@click.option("--stack-name", "-s", required=True, help="CloudFormation stack name or id")
@click.option("--change-set-name", "-c", required=True, help="Change set name")
@click.option("--region", help="AWS region")
@click.option("--profile", help="AWS profile to use")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def describe(
    stack_name: str,
    change_set_name: str,
    region: Optional[str],
    profile: Optional[str],
    output_json: bool,
) -> None:
    """Show the status and resource changes of an existing change set."""
    try:
        parameters = TaskParameters(
            stack_name=stack_name,
            change_set_name=change_set_name,
            aws_region=region,
            aws_profile=profile,
        )
        summary = describe_change_set(parameters)

        if output_json:
            click.echo(json.dumps(summary, indent=2, default=str))
            return

        click.echo(f"Change set: {summary['change_set_name']}")
        click.echo(f"Stack: {summary['stack_id']}")
        click.echo(f"Status: {summary['status']}")
        if summary["status_reason"]:
            click.echo(f"Reason: {summary['status_reason']}")
        click.echo(f"Execution status: {summary['execution_status']}")

        if summary["changes"]:
            click.echo(f"\nChanges ({len(summary['changes'])}):")
            for change in summary["changes"]:
                click.echo(
                    f"  {change['action']:<8} {change['logical_id']} ({change['resource_type']})"
                )
        else:
            click.echo("\nNo changes")

    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
