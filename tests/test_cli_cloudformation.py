"""
Tests for the change set CLI commands.
"""

import json
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from cli.__main__ import cli
from cli.cloudformation import main
from cloudformation.errors import ChangeSetValidationError
from config import ChangeSetType, TemplateLocation

STACK_ID = "arn:aws:cloudformation:us-east-1:123456789012:stack/test-stack/1111"


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


class TestCreateChangeSet:
    """Test the create-change-set command."""

    def test_success(self, runner):
        with patch("cli.cloudformation.run", return_value=STACK_ID) as mock_run:
            result = runner.invoke(
                main,
                [
                    "create-change-set",
                    "--stack-name", "test-stack",
                    "--change-set-name", "test-cs",
                    "--region", "us-east-1",
                    "--template-file", "template.yaml",
                    "--resource-type", "AWS::SNS::Topic",
                    "--resource-type", "AWS::SQS::Queue",
                    "--auto-execute",
                    "--json",
                ],
            )

        assert result.exit_code == 0, result.output
        params = mock_run.call_args[0][0]
        assert params.stack_name == "test-stack"
        assert params.template_location == TemplateLocation.LINKED_ARTIFACT
        assert params.resource_types == ("AWS::SNS::Topic", "AWS::SQS::Queue")
        assert params.auto_execute is True
        assert "##vso[task.complete result=Succeeded;]" in result.output
        assert f'"stack_id": "{STACK_ID}"' in result.output

    def test_missing_region(self, runner, monkeypatch):
        monkeypatch.delenv("AWS_REGION", raising=False)
        monkeypatch.delenv("AWS_DEFAULT_REGION", raising=False)

        with patch("cli.cloudformation.run") as mock_run:
            result = runner.invoke(
                main,
                [
                    "create-change-set",
                    "--stack-name", "test-stack",
                    "--change-set-name", "test-cs",
                    "--template-file", "template.yaml",
                ],
            )

        assert result.exit_code == 1
        assert "Input required: regionName" in result.output
        assert "##vso[task.complete result=Failed;]" in result.output
        mock_run.assert_not_called()

    def test_task_failure(self, runner):
        error = ChangeSetValidationError("test-cs", "No changes")

        with patch("cli.cloudformation.run", side_effect=error):
            result = runner.invoke(
                main,
                [
                    "create-change-set",
                    "-s", "test-stack",
                    "-c", "test-cs",
                    "--region", "us-east-1",
                    "--template-file", "template.yaml",
                ],
            )

        assert result.exit_code == 1
        assert "❌ Error: Change set test-cs validation failed: No changes" in result.output
        assert "result=Failed;]Change set test-cs validation failed: No changes" in result.output

    def test_config_file_with_overrides(self, runner, tmp_path):
        task_file = tmp_path / "task.yaml"
        task_file.write_text(
            yaml.dump(
                {
                    "stackName": "yaml-stack",
                    "changeSetName": "yaml-cs",
                    "regionName": "us-west-2",
                    "templateLocation": "UsePrevious",
                    "changeSetType": "UPDATE",
                }
            )
        )

        with patch("cli.cloudformation.run", return_value=STACK_ID) as mock_run:
            result = runner.invoke(
                main,
                ["create-change-set", "--config", str(task_file), "--change-set-name", "cli-cs"],
            )

        assert result.exit_code == 0, result.output
        params = mock_run.call_args[0][0]
        assert params.stack_name == "yaml-stack"
        assert params.change_set_name == "cli-cs"
        assert params.change_set_type == ChangeSetType.UPDATE
        assert params.template_location == TemplateLocation.USE_PREVIOUS
        assert "✅ Change set cli-cs ready for stack" in result.output


class TestRunTask:
    """Test the pipeline entry point."""

    ENV = {
        "INPUT_STACKNAME": "env-stack",
        "INPUT_CHANGESETNAME": "env-cs",
        "INPUT_REGIONNAME": "us-east-1",
        "INPUT_TEMPLATELOCATION": "FileURL",
        "INPUT_CFTEMPLATEURL": "https://s3.amazonaws.com/bucket/template.yaml",
        "INPUT_OUTPUTVARIABLE": "StackId",
    }

    def test_reads_task_inputs(self, runner):
        with patch("cli.cloudformation.run", return_value=STACK_ID) as mock_run:
            result = runner.invoke(main, ["run-task"], env=self.ENV)

        assert result.exit_code == 0, result.output
        params = mock_run.call_args[0][0]
        assert params.stack_name == "env-stack"
        assert params.template_location == TemplateLocation.FILE_URL
        assert params.output_variable == "StackId"
        assert "##vso[task.complete result=Succeeded;]" in result.output

    def test_reports_failure(self, runner):
        env = dict(self.ENV, INPUT_WAITERDELAY="later")

        with patch("cli.cloudformation.run") as mock_run:
            result = runner.invoke(main, ["run-task"], env=env)

        assert result.exit_code == 1
        assert "result=Failed;]Input waiterDelay must be an integer" in result.output
        mock_run.assert_not_called()

    def test_task_shortcut(self, runner):
        with patch("cli.cloudformation.run", return_value=STACK_ID) as mock_run:
            result = runner.invoke(cli, ["task"], env=self.ENV)

        assert result.exit_code == 0, result.output
        mock_run.assert_called_once()


class TestDescribeChangeSet:
    """Test the describe-change-set command."""

    SUMMARY = {
        "change_set_name": "test-cs",
        "stack_id": STACK_ID,
        "status": "FAILED",
        "status_reason": "The submitted information didn't contain changes.",
        "execution_status": "UNAVAILABLE",
        "changes": [],
    }

    def test_human_readable(self, runner):
        with patch("cli.cloudformation.describe_change_set", return_value=self.SUMMARY):
            result = runner.invoke(
                main, ["describe-change-set", "-s", "test-stack", "-c", "test-cs"]
            )

        assert result.exit_code == 0, result.output
        assert "Status: FAILED" in result.output
        assert "Reason: The submitted information didn't contain changes." in result.output
        assert "No changes" in result.output

    def test_json(self, runner):
        with patch("cli.cloudformation.describe_change_set", return_value=self.SUMMARY):
            result = runner.invoke(
                main, ["describe-change-set", "-s", "test-stack", "-c", "test-cs", "--json"]
            )

        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == self.SUMMARY

    def test_error(self, runner):
        with patch(
            "cli.cloudformation.describe_change_set", side_effect=RuntimeError("boom")
        ):
            result = runner.invoke(
                main, ["describe-change-set", "-s", "test-stack", "-c", "test-cs"]
            )

        assert result.exit_code == 1
        assert "Error: boom" in result.output


def test_cli_help(runner):
    result = runner.invoke(cli, ["cloudformation", "--help"])

    assert result.exit_code == 0
    assert "create-change-set" in result.output
    assert "run-task" in result.output
    assert "describe-change-set" in result.output
