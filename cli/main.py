#!/usr/bin/env python3
"""
BSV Wallet Templates - Command Line Interface

Builds and inspects the locking scripts produced by the wallet templates and
manages the configuration used by the transaction builder.
"""

from typing import Optional

import click

from cli import __version__
from cli.commands.config import config
from cli.commands.script import script
from cli.context import CLIContext, pass_context


@click.group(context_settings={'help_option_names': ['-h', '--help']})
@click.option('--config-file', '-c',
              type=click.Path(dir_okay=False),
              help='Path to configuration file')
@click.option('--profile', '-p',
              help='Configuration profile (economy, priority, development)')
@click.option('--output-format', '-o',
              type=click.Choice(['table', 'json', 'yaml']),
              default=None,
              help='Output format (default from configuration, else table)')
@click.option('--verbose', '-v',
              count=True,
              help='Increase verbosity (-v for INFO, -vv for DEBUG)')
@click.version_option(__version__, prog_name='bwt')
@pass_context
def cli(ctx: CLIContext, config_file: Optional[str], profile: Optional[str],
        output_format: Optional[str], verbose: int):
    """
    BSV Wallet Templates (bwt) Command Line Interface

    Build P2PKH, ordinal and OrdLock locking scripts, append OP_RETURN
    data and inspect scripts.

    Examples:
        bwt script p2pkh --public-key 02...
        bwt -o json script inspect 76a914...88ac
        bwt config show builder
    """
    ctx.config_file = config_file
    ctx.profile = profile
    ctx.output_format = output_format
    ctx.verbose = verbose

    ctx.load_config()
    configured = ctx.config_manager.get('cli.verbose', 0)
    if not verbose and isinstance(configured, int):
        ctx.verbose = configured
    ctx.setup_logging()

    ctx.logger.debug("CLI initialized with context")


cli.add_command(script)
cli.add_command(config)


if __name__ == '__main__':
    cli()
