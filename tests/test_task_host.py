"""
Tests for pipeline agent integration.
"""

import io

import pytest

import task_host


def test_input_variable_name():
    assert task_host.input_variable_name("stackName") == "INPUT_STACKNAME"
    assert task_host.input_variable_name("aws.region name") == "INPUT_AWS_REGION_NAME"


def test_get_input():
    environ = {"INPUT_STACKNAME": "  my-stack  ", "INPUT_DESCRIPTION": "   "}

    assert task_host.get_input("stackName", environ=environ) == "my-stack"
    assert task_host.get_input("description", environ=environ) is None
    assert task_host.get_input("roleARN", environ=environ) is None


def test_get_input_required():
    with pytest.raises(ValueError, match="Input required: stackName"):
        task_host.get_input("stackName", required=True, environ={})


def test_get_bool_input():
    environ = {"INPUT_A": "true", "INPUT_B": "False", "INPUT_C": "YES"}

    assert task_host.get_bool_input("a", environ=environ) is True
    assert task_host.get_bool_input("b", environ=environ) is False
    assert task_host.get_bool_input("c", environ=environ) is True
    assert task_host.get_bool_input("d", default=True, environ=environ) is True


def test_get_delimited_input():
    environ = {"INPUT_RESOURCETYPES": "AWS::S3::Bucket,\nAWS::SNS::Topic\n\n, AWS::SQS::Queue"}

    assert task_host.get_delimited_input("resourceTypes", environ=environ) == [
        "AWS::S3::Bucket",
        "AWS::SNS::Topic",
        "AWS::SQS::Queue",
    ]
    assert task_host.get_delimited_input("notificationARNs", environ=environ) == []


def test_set_variable_writes_logging_command():
    stream = io.StringIO()

    task_host.set_variable("StackId", "arn:aws:cloudformation:stack/abc", stream=stream)

    assert stream.getvalue() == (
        "##vso[task.setvariable variable=StackId;]arn:aws:cloudformation:stack/abc\n"
    )


def test_set_result_escapes_message():
    stream = io.StringIO()

    task_host.set_result(task_host.TaskResult.FAILED, "line one\nline two 100%", stream=stream)

    assert stream.getvalue() == (
        "##vso[task.complete result=Failed;]line one%0Aline two 100%AZP25\n"
    )


def test_set_result_defaults_to_stdout(capsys):
    task_host.set_result(task_host.TaskResult.SUCCEEDED)

    assert capsys.readouterr().out == "##vso[task.complete result=Succeeded;]\n"
