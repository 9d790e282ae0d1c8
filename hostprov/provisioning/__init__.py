"""Instance provisioning: provider client, pollers, credentials, handoff."""

from hostprov.provisioning.credentials import CredentialGenerator, PasswordLog
from hostprov.provisioning.handoff import provision_hosting, reboot_by_label
from hostprov.provisioning.linode import LinodeClient
from hostprov.provisioning.poll import wait_for_ssh, wait_for_status
from hostprov.provisioning.setup_config import build_setup_config
from hostprov.provisioning.shell import run_shell_cmd
from hostprov.provisioning.types import HostingRequest, Instance, RunContext, RunResult

__all__ = [
    "CredentialGenerator",
    "PasswordLog",
    "LinodeClient",
    "wait_for_status",
    "wait_for_ssh",
    "build_setup_config",
    "run_shell_cmd",
    "provision_hosting",
    "reboot_by_label",
    "HostingRequest",
    "Instance",
    "RunContext",
    "RunResult",
]
