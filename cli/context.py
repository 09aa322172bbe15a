#!/usr/bin/env python3
"""
Shared CLI state for the bwt command groups.
"""

import sys
import logging
import traceback
from functools import wraps
from typing import Any, Optional

import click

from crypto.exceptions import CryptoError
from scripts.exceptions import ScriptError
from transaction.exceptions import TransactionError
from wallet.exceptions import WalletError

from cli.config import ConfigurationManager
from cli.output import OutputFormatter


# Loggers configured by -v
PACKAGE_LOGGERS = ['bwt-cli', 'crypto', 'scripts', 'wallet', 'transaction']

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
HANDLER_NAME = 'bwt-cli'


class CLIContext:
    """Global CLI context for sharing state across commands."""

    def __init__(self):
        self.config_file: Optional[str] = None
        self.profile: Optional[str] = None
        self.output_format: Optional[str] = None
        self.verbose: int = 0
        self.config_manager: Optional[ConfigurationManager] = None
        self.logger: logging.Logger = logging.getLogger('bwt-cli')

    def setup_logging(self):
        """Configure logging based on verbosity level."""
        log_levels = {
            0: logging.WARNING,
            1: logging.INFO,
            2: logging.DEBUG
        }
        level = log_levels.get(min(self.verbose, 2), logging.DEBUG)

        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

        for name in PACKAGE_LOGGERS:
            logger = logging.getLogger(name)
            # Replace the handler of an earlier invocation in the same process
            for existing in [h for h in logger.handlers if h.get_name() == HANDLER_NAME]:
                logger.removeHandler(existing)
            logger.addHandler(handler)
            logger.setLevel(level)

    def load_config(self):
        """Load configuration from defaults, profile, file and environment."""
        self.config_manager = ConfigurationManager(self.config_file, self.profile)
        self.config_manager.load()
        if self.output_format is None:
            self.output_format = self.config_manager.get('cli.output_format', 'table')

    def output(self, data: Any):
        """Output data in the selected format."""
        formatter = OutputFormatter(self.output_format or 'table')
        click.echo(formatter.format(data))


pass_context = click.make_pass_decorator(CLIContext, ensure=True)


def handle_cli_error(func):
    """Decorator reporting library errors as a one-line message and exit status 1."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (CryptoError, ScriptError, TransactionError, WalletError) as e:
            ctx = click.get_current_context().find_object(CLIContext)
            click.echo(f"Error: {e}", err=True)
            if ctx and ctx.verbose >= 2:
                # Full traceback in debug mode
                click.echo(traceback.format_exc(), err=True)
            else:
                click.echo("Use -vv for detailed error information.", err=True)
            sys.exit(1)

    return wrapper
