#!/usr/bin/env python3
"""
Configuration Management Commands for the bwt CLI

Commands for showing, validating and tracing the effective configuration.
"""

import sys
from typing import Optional

import click

from cli.context import CLIContext, pass_context


@click.group()
@pass_context
def config(ctx: CLIContext):
    """
    Configuration management commands.

    Configuration is merged from defaults, an optional --profile, the first
    config file found (.bwt.yml, .bwt.json, ~/.bwt/config.yml, ...) and
    BWT_<SECTION>_<KEY> environment variables.
    """
    ctx.logger.debug("Config command group invoked")


@config.command('show')
@click.argument('key', required=False)
@pass_context
def show_config(ctx: CLIContext, key: Optional[str]):
    """Show the effective configuration, or one dot-separated KEY."""
    if key is None:
        ctx.output(ctx.config_manager.load())
        return

    value = ctx.config_manager.get(key)
    if value is None:
        click.echo(f"Configuration key not found: {key}", err=True)
        sys.exit(1)
    ctx.output({key: value})


@config.command('validate')
@pass_context
def validate_config(ctx: CLIContext):
    """Validate the effective configuration."""
    errors = ctx.config_manager.validate()
    if errors:
        click.echo("Configuration validation failed:", err=True)
        for error in errors:
            click.echo(f"  - {error}", err=True)
        sys.exit(1)

    settings = ctx.config_manager.builder_settings()
    click.echo("Configuration is valid")
    click.echo(f"  Fee rate: {settings.sat_per_kb} sat/kB")


@config.command('sources')
@pass_context
def config_sources(ctx: CLIContext):
    """List the configuration sources in order of precedence (lowest first)."""
    for index, source in enumerate(ctx.config_manager.get_sources(), 1):
        click.echo(f"{index}. {source}")
