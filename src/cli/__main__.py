#!/usr/bin/env python3
"""Main CLI entry point for the change set task."""

import sys

import click

from .cloudformation import configure_logging, main as cf_commands, run_task


@click.group()
@click.version_option(package_name="cfn-change-set-task")
def cli() -> None:
    """Create and execute CloudFormation change sets from a pipeline.

    Run ``cloudformation run-task`` inside a pipeline step, or
    ``cloudformation create-change-set`` from a terminal.
    """
    pass


cli.add_command(cf_commands, name="cloudformation")


@cli.command("task")
@click.pass_context
def task(ctx: click.Context) -> None:
    """Shortcut for ``cloudformation run-task``."""
    configure_logging(False)
    ctx.invoke(run_task)


if __name__ == "__main__":
    sys.exit(cli())
