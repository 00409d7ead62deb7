"""
Errors raised while creating and executing a CloudFormation change set.
"""


class ChangeSetTaskError(Exception):
    """Base class for all change set task failures."""


class UnknownModeError(ChangeSetTaskError):
    """The template location mode is not recognised."""

    def __init__(self, mode: str):
        super().__init__(f"Unknown templateLocation mode {mode}")
        self.mode = mode


class FileLoadError(ChangeSetTaskError):
    """A local template or parameters file could not be read."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to load template files: {path}: {reason}")
        self.path = path


class ParameterParseError(ChangeSetTaskError):
    """A parameters file does not contain a valid JSON parameter list."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to parse template parameters in {path}: {reason}")
        self.path = path


class UrlFormatError(ChangeSetTaskError):
    """A parameters file URL does not look like an S3 object URL."""

    def __init__(self, url: str, pattern: str):
        super().__init__(
            f"Parameters file URL '{url}' does not match the expected format {pattern}"
        )
        self.url = url


class DownloadOrParseError(ChangeSetTaskError):
    """A parameters file could not be downloaded from S3 or parsed."""

    def __init__(self, url: str, reason: str):
        super().__init__(
            f"Failed to download or parse parameters file {url}: {reason}"
        )
        self.url = url


class ChangeSetCreationError(ChangeSetTaskError):
    """The create change set call was rejected."""

    def __init__(self, change_set_name: str, reason: str):
        super().__init__(f"Change set {change_set_name} creation failed: {reason}")
        self.change_set_name = change_set_name


class ChangeSetValidationError(ChangeSetTaskError):
    """The change set did not reach CREATE_COMPLETE."""

    def __init__(self, change_set_name: str, reason: str):
        super().__init__(f"Change set {change_set_name} validation failed: {reason}")
        self.change_set_name = change_set_name


class ExecutionError(ChangeSetTaskError):
    """The execute change set call was rejected."""

    def __init__(self, change_set_name: str, reason: str):
        super().__init__(f"Execution of change set {change_set_name} failed: {reason}")
        self.change_set_name = change_set_name


class StackCompletionError(ChangeSetTaskError):
    """The stack did not reach a complete state after execution."""

    def __init__(self, stack_name: str, reason: str):
        super().__init__(f"Stack {stack_name} did not complete: {reason}")
        self.stack_name = stack_name
