"""
Pipeline agent integration.

Task inputs arrive as ``INPUT_<NAME>`` environment variables and results are
reported back to the agent with ``##vso[...]`` logging commands written to
stdout.
"""

import os
import re
import sys
from enum import Enum
from typing import Dict, List, Mapping, Optional, TextIO

TRUE_VALUES = ("true", "yes", "1", "on")


class TaskResult(Enum):
    """Final result reported to the agent."""

    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


def input_variable_name(name: str) -> str:
    """Map a task input name to the environment variable the agent sets."""
    return "INPUT_" + re.sub(r"[ .]", "_", name).upper()


def get_input(
    name: str,
    required: bool = False,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """Read a task input, returning None when it is unset or blank."""
    environ = os.environ if environ is None else environ
    value = environ.get(input_variable_name(name), "").strip()
    if not value:
        if required:
            raise ValueError(f"Input required: {name}")
        return None
    return value


def get_bool_input(
    name: str, default: bool = False, environ: Optional[Mapping[str, str]] = None
) -> bool:
    """Read a boolean task input."""
    value = get_input(name, environ=environ)
    if value is None:
        return default
    return value.lower() in TRUE_VALUES


def get_delimited_input(
    name: str, delimiters: str = "\n,", environ: Optional[Mapping[str, str]] = None
) -> List[str]:
    """Read a list input split on any of the given delimiters."""
    value = get_input(name, environ=environ)
    if value is None:
        return []
    return [item.strip() for item in re.split(f"[{re.escape(delimiters)}]", value) if item.strip()]


def _escape_data(value: str) -> str:
    return value.replace("%", "%AZP25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace("]", "%5D").replace(";", "%3B")


def _command(name: str, properties: Dict[str, str], message: str) -> str:
    props = ";".join(f"{key}={_escape_property(val)}" for key, val in properties.items())
    return f"##vso[{name} {props};]{_escape_data(message)}"


def set_variable(name: str, value: str, stream: Optional[TextIO] = None) -> None:
    """Publish a pipeline variable visible to later steps."""
    print(_command("task.setvariable", {"variable": name}, value), file=stream or sys.stdout)


def set_result(result: TaskResult, message: str = "", stream: Optional[TextIO] = None) -> None:
    """Report the task result to the agent."""
    print(_command("task.complete", {"result": result.value}, message), file=stream or sys.stdout)
