"""Centralized secret redaction for console logs."""

import logging
import os
import re

# Env vars whose values should be redacted from all output
_SECRET_ENV_VARS = [
    "LINODE_TOKEN",
    "LINODE_CLI_TOKEN",
]

_MIN_SECRET_LENGTH = 8  # skip short values to avoid false positives

# Secrets generated during this run (passwords), added by register_secret()
_runtime_secrets: set[str] = set()


def _collect_secret_values() -> set[str]:
    values = set()
    for var in _SECRET_ENV_VARS:
        val = os.environ.get(var, "")
        if len(val) >= _MIN_SECRET_LENGTH:
            values.add(val)
    values.update(_runtime_secrets)
    return values


def _build_patterns(values: set[str]) -> list[re.Pattern]:
    # Sort by length descending so longer values match first
    return [re.compile(re.escape(v)) for v in sorted(values, key=len, reverse=True)]


# Lazy-initialized module cache
_patterns: list[re.Pattern] | None = None


def _get_patterns() -> list[re.Pattern]:
    global _patterns
    if _patterns is None:
        _patterns = _build_patterns(_collect_secret_values())
    return _patterns


def register_secret(value: str) -> None:
    """Redact *value* from all subsequent log output."""
    global _patterns
    if len(value) >= _MIN_SECRET_LENGTH and value not in _runtime_secrets:
        _runtime_secrets.add(value)
        _patterns = None


def redact_secrets(text: str) -> str:
    """Replace known secret values with '***'."""
    return _apply(text, _get_patterns())


def _apply(text: str, patterns: list[re.Pattern]) -> str:
    for p in patterns:
        text = p.sub("***", text)
    return text


class SecretRedactingFilter(logging.Filter):
    """Logging filter that replaces secret values in log records with '***'.

    Attach to handlers, not loggers: logger filters skip propagated records.
    Handles both f-string messages (msg is pre-formatted) and
    %-style messages (msg + args).
    """

    def filter(self, record: logging.LogRecord) -> bool:
        patterns = _get_patterns()
        if patterns:
            record.msg = _apply(str(record.msg), patterns)
            if record.args:
                if isinstance(record.args, dict):
                    record.args = {k: _apply(v, patterns) if isinstance(v, str) else v for k, v in record.args.items()}
                elif isinstance(record.args, tuple):
                    record.args = tuple(_apply(a, patterns) if isinstance(a, str) else a for a in record.args)
        return True
