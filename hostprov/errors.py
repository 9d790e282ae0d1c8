"""Error taxonomy for provisioning runs.

Every component raises a ProvisionError subclass; the CLI handlers catch the
base class, report it and exit non-zero.
"""


class ProvisionError(Exception):
    """Base class for all fatal provisioning errors."""


class ConfigError(ProvisionError):
    """Required settings are missing or the config file is unreadable."""

    def __init__(self, message, missing=None):
        super().__init__(message)
        self.missing = list(missing or [])


class InputError(ProvisionError):
    """Required CLI or interactive values are missing."""

    def __init__(self, message, missing=None):
        super().__init__(message)
        self.missing = list(missing or [])


class ProviderError(ProvisionError):
    """The provider API returned no result or a non-success response."""


class PollTimeout(ProvisionError):
    """A poller exceeded its elapsed-time budget."""


class CredentialError(ProvisionError):
    """The entropy source was unreachable or returned an empty secret."""


class TransferError(ProvisionError):
    """Copying files to the instance or launching remote setup failed."""
