"""Credential generation and the append-only password log."""

import logging
import os
import secrets
import string
import tempfile

import httpx

from hostprov.errors import ConfigError, CredentialError
from hostprov.redact import register_secret

logger = logging.getLogger(__name__)

RANDOM_ORG_URL = "https://www.random.org/strings/"
# Two unique 20-char alphanumeric strings, joined into one secret.
RANDOM_ORG_PARAMS = {
    "num": 2,
    "len": 20,
    "digits": "on",
    "upperalpha": "on",
    "loweralpha": "on",
    "unique": "on",
    "format": "plain",
    "rnd": "new",
}
LOCAL_SECRET_LENGTH = 40


class PasswordLog:
    """Append-only plaintext log of every credential generated in a run.

    One line per entry, ``label: value``. The file is created with mode 0600
    and never truncated.
    """

    def __init__(self, path):
        self.path = path

    @classmethod
    def create(cls, directory=None, prefix="linode_passwords"):
        """Create a new uniquely named, empty log file in *directory*."""
        try:
            fd, path = tempfile.mkstemp(prefix=f"{prefix}.", dir=directory or None)
        except OSError as e:
            raise ConfigError(f"Could not create password log in {directory}: {e}") from e
        os.close(fd)
        logger.info(f"Password log created at {path}")
        return cls(path)

    def append(self, label, secret):
        """Record a generated secret."""
        logger.info(f"Logging to {self.path}: {label}")
        self._write(label, secret)

    def note(self, label, value):
        """Record a non-secret value alongside the credentials (e.g. a user name)."""
        logger.debug(f"Logging to {self.path}: {label}: {value}")
        self._write(label, value)

    def _write(self, label, value):
        with open(self.path, "a") as f:
            f.write(f"{label}: {value}\n")
            f.flush()


class CredentialGenerator:
    """Generate random secrets and log each one before handing it out.

    Args:
        password_log: PasswordLog every secret is appended to.
        source: "random.org" (remote entropy over HTTPS) or "local"
            (the ``secrets`` module).
        dry_run: if True, return placeholders without contacting random.org.
        transport: optional httpx transport, used by tests.
    """

    def __init__(self, password_log, source="random.org", dry_run=False, transport=None):
        self.password_log = password_log
        self.source = source
        self.dry_run = dry_run
        self._transport = transport

    async def generate(self, label):
        """Return a fresh secret for *label*, already recorded in the password log.

        Raises:
            CredentialError: if the entropy source is unreachable or returns
                an empty value.
        """
        if self.dry_run:
            logger.info(f"[dry-run] GET {RANDOM_ORG_URL} ({label})")
            secret = f"dry-run-{label}-secret"
        elif self.source == "local":
            secret = _local_secret()
        else:
            secret = await self._fetch_random_org()

        if not secret:
            raise CredentialError(f"Entropy source '{self.source}' returned an empty secret for '{label}'")

        register_secret(secret)
        self.password_log.append(label, secret)
        return secret

    async def _fetch_random_org(self):
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.get(RANDOM_ORG_URL, params=RANDOM_ORG_PARAMS, timeout=30)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise CredentialError(f"Could not fetch random string from random.org: {e}") from e
        return "".join(resp.text.split())


def _local_secret(length=LOCAL_SECRET_LENGTH):
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))
