"""Handoff orchestration: create a Linode and hand it to the remote setup scripts.

Steps run strictly in order and the first error aborts the run:

1. Validate settings
2. Create the password log
3. Create the instance with a generated root password
4. Wait for running status
5. Resolve the instance address
6. Wait for SSH
7. Build the setup config
8. Copy setup scripts and config to the instance
9. Delete the local setup config
10. Launch the setup entry point detached
11. Report the password log location
"""

import glob
import logging
import os

from hostprov.config import SETUP_SCRIPTS_GLOB, Settings
from hostprov.errors import ProviderError, TransferError
from hostprov.provisioning import poll
from hostprov.provisioning.credentials import CredentialGenerator, PasswordLog
from hostprov.provisioning.linode import read_authorized_key
from hostprov.provisioning.setup_config import build_setup_config
from hostprov.provisioning.ssh_transport import launch_detached, scp_files
from hostprov.provisioning.types import RunContext, RunResult

logger = logging.getLogger(__name__)

REMOTE_CONFIG_NAME = "config.sh"


def find_setup_scripts(scripts_dir):
    """Local setup scripts to upload, sorted by name."""
    scripts = sorted(glob.glob(os.path.join(scripts_dir, SETUP_SCRIPTS_GLOB)))
    if not scripts:
        raise TransferError(f"No setup scripts matching '{SETUP_SCRIPTS_GLOB}' in {scripts_dir}")
    return scripts


async def transfer_setup(server, scripts_dir, config_path, dry_run=False):
    """Upload the setup scripts to the home directory and the config as config.sh."""
    rc, stderr = await scp_files(find_setup_scripts(scripts_dir), server, ".", dry_run=dry_run)
    if rc != 0:
        raise TransferError(f"Failed to copy setup scripts to {server}: {stderr.strip()}")

    rc, stderr = await scp_files([config_path], server, REMOTE_CONFIG_NAME, dry_run=dry_run)
    if rc != 0:
        raise TransferError(f"Failed to copy setup config to {server}: {stderr.strip()}")


async def provision_hosting(request, raw_settings, client, dry_run=False, transport=None):
    """Run the full create-and-handoff sequence for one hosting request.

    Args:
        request: HostingRequest with label, region, type and customer values.
        raw_settings: settings mapping as loaded from the config file.
        client: LinodeClient (or any object with the same coroutines).
        dry_run: log provider requests and remote commands instead of running them.
        transport: optional httpx transport for the credential source.

    Returns:
        RunResult with the instance id, address and password log path.

    Raises:
        ProvisionError: on the first failing step.
    """
    # 1. Validate settings and local resources before anything is created
    settings = Settings.from_dict(raw_settings)
    authorized_key = read_authorized_key(settings.ssh_public_key) if not dry_run else "dry-run-placeholder"

    # 2. Password log for this run
    ctx = RunContext(password_log=PasswordLog.create(settings.password_log_dir))
    generator = CredentialGenerator(ctx.password_log, source=settings.entropy_source, dry_run=dry_run, transport=transport)

    # 3. Create the instance
    root_pass = await generator.generate("root")
    instance = await client.create_instance(
        label=request.label,
        region=request.region,
        type=request.type,
        image=settings.image,
        root_pass=root_pass,
        authorized_keys=[authorized_key],
    )
    ctx.instance_id = instance.id

    # 4. Wait until running
    instance = await poll.wait_for_status(client, ctx.instance_id, "running", settings.wait_time, dry_run=dry_run)

    # 5. Resolve address
    ctx.host = instance.address
    if not ctx.host:
        raise ProviderError(f"Linode {ctx.instance_id} is running but has no IPv4 address")
    logger.info(f"IP: {ctx.host}")

    # 6. Wait for SSH
    await poll.wait_for_ssh(settings.ssh_user, ctx.host, settings.wait_time, dry_run=dry_run)
    server = f"{settings.ssh_user}@{ctx.host}"

    # 7-9. Build, upload and remove the setup config
    config_path = await build_setup_config(
        ctx, generator, settings, request.server_name, request.username, request.domain_name
    )
    try:
        await transfer_setup(server, settings.scripts_dir, config_path, dry_run=dry_run)
    finally:
        os.unlink(config_path)
        logger.debug(f"Removed local setup config {config_path}")

    # 10. Fire and forget: setup runs on the instance, its outcome is not observed here
    logger.info(f"Starting {settings.setup_entrypoint} on {ctx.host}.")
    rc, stderr = await launch_detached(server, settings.setup_entrypoint, dry_run=dry_run)
    if rc != 0:
        raise TransferError(f"Failed to launch {settings.setup_entrypoint} on {ctx.host}: {stderr.strip()}")

    # 11. Report
    logger.info(f"Passwords in {ctx.password_log.path}")
    return RunResult(instance_id=ctx.instance_id, host=ctx.host, password_log_path=ctx.password_log.path)


async def reboot_by_label(client, label):
    """Reboot the instance carrying *label*.

    Raises:
        ProviderError: if no instance has that label or the reboot is refused.
    """
    instance = await client.find_by_label(label)
    if instance is None:
        raise ProviderError(f"No linode compute instance found for label '{label}'")
    await client.reboot(instance.id)
    logger.info(f"Rebooted linode {instance.id} ({label})")
    return instance
