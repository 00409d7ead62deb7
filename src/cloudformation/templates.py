"""
Template and template parameter resolution for change set requests.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from config import TaskParameters, TemplateLocation

from .errors import (
    DownloadOrParseError,
    FileLoadError,
    ParameterParseError,
    UnknownModeError,
    UrlFormatError,
)

logger = logging.getLogger(__name__)

# Host part of a path style S3 URL, e.g. https://s3.us-west-2.amazonaws.com/bucket/key
S3_URL_PATTERN = r"(s3-|s3\.)?(.*)\.amazonaws\.com"


@dataclass(frozen=True)
class TemplateSource:
    """A resolved template: exactly one of body, URL or the previous template."""

    template_body: Optional[str] = None
    template_url: Optional[str] = None
    use_previous_template: bool = False
    parameters: Optional[List[Dict[str, Any]]] = None

    def __post_init__(self) -> None:
        sources = [
            self.template_body is not None,
            self.template_url is not None,
            self.use_previous_template,
        ]
        if sum(sources) != 1:
            raise ValueError(
                "Exactly one of template_body, template_url or use_previous_template must be set"
            )

    def request_arguments(self) -> Dict[str, Any]:
        """Template related keyword arguments for create_change_set."""
        args: Dict[str, Any] = {}
        if self.template_body is not None:
            args["TemplateBody"] = self.template_body
        elif self.template_url is not None:
            args["TemplateURL"] = self.template_url
        else:
            args["UsePreviousTemplate"] = True

        if self.parameters is not None:
            args["Parameters"] = self.parameters
        return args


def parse_s3_url(url: str) -> Tuple[str, str]:
    """
    Split an S3 object URL into bucket name and object key.

    Everything after ``<host>.amazonaws.com/`` is read as ``<bucket>/<key>``.

    Raises:
        UrlFormatError: If the URL has no amazonaws.com host
    """
    match = re.search(S3_URL_PATTERN, url)
    if not match:
        raise UrlFormatError(url, S3_URL_PATTERN)

    bucket_url = url[url.index(match.group(0)) + len(match.group(0)) + 1 :]
    logger.debug(f"Bucket URL: {bucket_url}")
    bucket_name = bucket_url.split("/")[0]
    logger.debug(f"Bucket name: {bucket_name}")
    file_key = bucket_url[bucket_url.index(bucket_name) + len(bucket_name) + 1 :]
    logger.debug(f"Template parameters file key: {file_key}")
    return bucket_name, file_key


def parse_parameters(content: str, source: str) -> List[Dict[str, Any]]:
    """Parse a JSON template parameters document into a parameter list."""
    try:
        parameters = json.loads(content)
    except json.JSONDecodeError as e:
        raise ParameterParseError(source, str(e)) from e

    if not isinstance(parameters, list) or not all(isinstance(p, dict) for p in parameters):
        raise ParameterParseError(
            source, "expected a JSON array of ParameterKey/ParameterValue objects"
        )
    return parameters


def _read_file(path: Optional[str]) -> str:
    if not path:
        raise FileLoadError("<unset>", "no file path given")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Failed to load template files: {e}")
        raise FileLoadError(path, str(e)) from e


def load_parameters_file(path: str) -> List[Dict[str, Any]]:
    """Load template parameters from a local JSON file."""
    logger.info(f"Loading template parameters file {path}")
    try:
        parameters = parse_parameters(_read_file(path), path)
    except ParameterParseError as e:
        logger.error(str(e))
        raise
    logger.debug("Successfully loaded template parameters file")
    return parameters


class TemplateResolver:
    """Resolve the template source for each template location mode."""

    def __init__(self, s3_client: Any):
        self.s3 = s3_client

    def resolve(self, parameters: TaskParameters) -> TemplateSource:
        """Resolve the template for the configured template location."""
        location = parameters.template_location
        if location == TemplateLocation.LINKED_ARTIFACT:
            return self.from_template_file(parameters)
        if location == TemplateLocation.FILE_URL:
            return self.from_template_url(parameters)
        if location == TemplateLocation.USE_PREVIOUS:
            return self.from_previous_template(parameters)

        logger.error(f"Unknown templateLocation mode {location}")
        raise UnknownModeError(str(location))

    def from_template_file(self, parameters: TaskParameters) -> TemplateSource:
        """Read the template body and optional parameters from local files."""
        logger.info(
            f"Creating change set from template file {parameters.cf_template_file}"
            + (
                f" and parameters file {parameters.cf_parameters_file}"
                if parameters.cf_parameters_file
                else ""
            )
        )

        logger.info(f"Loading template file {parameters.cf_template_file}")
        template = _read_file(parameters.cf_template_file)
        logger.debug("Successfully loaded template file")

        template_parameters = None
        if parameters.cf_parameters_file:
            template_parameters = load_parameters_file(parameters.cf_parameters_file)

        return TemplateSource(template_body=template, parameters=template_parameters)

    def from_template_url(self, parameters: TaskParameters) -> TemplateSource:
        """Reference the template by URL and download its parameters from S3."""
        logger.info(
            f"Creating change set from template URL {parameters.cf_template_url}"
            + (
                f" and parameters URL {parameters.cf_parameters_file_url}"
                if parameters.cf_parameters_file_url
                else ""
            )
        )

        template_parameters = None
        if parameters.cf_parameters_file_url:
            template_parameters = self.download_parameters(parameters.cf_parameters_file_url)

        return TemplateSource(
            template_url=parameters.cf_template_url, parameters=template_parameters
        )

    def from_previous_template(self, parameters: TaskParameters) -> TemplateSource:
        """Reuse the stack's current template with optional new parameters."""
        logger.info("Creating change set from the stack's previous template")

        template_parameters = None
        if parameters.cf_parameters_file:
            template_parameters = load_parameters_file(parameters.cf_parameters_file)

        return TemplateSource(use_previous_template=True, parameters=template_parameters)

    def download_parameters(self, url: str) -> List[Dict[str, Any]]:
        """Download and parse a template parameters file stored in S3."""
        try:
            bucket_name, file_key = parse_s3_url(url)
        except UrlFormatError as e:
            logger.error(str(e))
            raise

        try:
            response = self.s3.get_object(Bucket=bucket_name, Key=file_key)
            content = response["Body"].read().decode("utf-8")
            return parse_parameters(content, url)
        except (ClientError, BotoCoreError, UnicodeDecodeError, ParameterParseError) as e:
            logger.error(f"Failed to load or parse parameters file from URL: {e}")
            raise DownloadOrParseError(url, str(e)) from e
