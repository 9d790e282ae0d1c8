"""Helpers shared by the CLI command handlers."""

import asyncio
import logging
import os
import sys

from hostprov.errors import ConfigError, InputError, ProvisionError
from hostprov.redact import register_secret

logger = logging.getLogger(__name__)


def resolve_token(args_token, dry_run=False):
    """Return the API token from the CLI flag or LINODE_TOKEN env var.

    Raises:
        ConfigError: if neither is set (not required for dry runs).
    """
    token = args_token or os.environ.get("LINODE_TOKEN")
    if not token:
        if dry_run:
            return ""
        raise ConfigError("Linode API token required. Use --token or set LINODE_TOKEN.")
    register_secret(token)
    return token


def run_or_exit(coro, parser=None):
    """Run a command coroutine, turning provisioning errors into exit status 1."""
    try:
        return asyncio.run(coro)
    except InputError as e:
        logger.error(str(e))
        if parser is not None:
            parser.print_help(sys.stderr)
        sys.exit(1)
    except ProvisionError as e:
        logger.error(f"FATAL ERROR: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.error("Aborted.")
        sys.exit(130)
