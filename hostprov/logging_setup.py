"""CLI logging setup: plain %(message)s format on the diagnostic stream."""

import logging
import sys

from hostprov.redact import SecretRedactingFilter


def setup_cli_logging(verbose=False):
    """Configure root logger with plain message format for CLI commands.

    Messages go to stderr so stdout stays free for piping; generated
    credentials and the API token are redacted by the handler filter.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    handler.addFilter(SecretRedactingFilter())
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
