"""Deadline-bounded polling: instance status and SSH reachability.

Both pollers share one shape: the deadline is fixed on entry, checked before
every probe, and a failed probe is followed by one interval of sleep. A
timeout therefore fires no earlier than the budget and no later than one
interval past it.
"""

import asyncio
import logging
import sys
import time

from hostprov.errors import PollTimeout
from hostprov.provisioning.linode import DRY_RUN_HOST
from hostprov.provisioning.shell import run_shell_cmd
from hostprov.provisioning.ssh_transport import forget_host_key, ssh_probe_args
from hostprov.provisioning.types import Instance

logger = logging.getLogger(__name__)

# Indirection so tests can substitute a fake clock.
_clock = time.monotonic
_sleep = asyncio.sleep


def progress():
    """Print one progress dot to stderr."""
    print(".", end="", file=sys.stderr, flush=True)


def _end_progress(ticks):
    if ticks:
        print(file=sys.stderr, flush=True)


async def wait_for_status(client, instance_id, target_status, timeout, interval=1, dry_run=False):
    """Poll instance status until it equals *target_status*.

    Returns:
        The Instance as last read from the provider.

    Raises:
        PollTimeout: if the budget of *timeout* seconds runs out first.
    """
    if dry_run:
        logger.info(f"[dry-run] Poll every {interval}s (up to {timeout}s) for status '{target_status}' on linode {instance_id}")
        return Instance(id=str(instance_id), status=target_status, ipv4=[DRY_RUN_HOST])

    deadline = _clock() + timeout
    status = None
    ticks = 0

    logger.info(f"Waiting for {target_status} status on linode {instance_id} ...")
    while True:
        if _clock() >= deadline:
            _end_progress(ticks)
            raise PollTimeout(
                f"Timed out after {timeout}s waiting for {target_status} status on linode {instance_id} (last: '{status}')"
            )
        instance = await client.get_instance(instance_id)
        status = instance.status
        if status == target_status:
            _end_progress(ticks)
            logger.info(f"Linode {instance_id} has achieved status {status}.")
            return instance
        progress()
        ticks += 1
        await _sleep(interval)


SSH_CHECK_TIMEOUT = 30


async def _probe_ssh(address, timeout=SSH_CHECK_TIMEOUT):
    rc, _, _ = await run_shell_cmd(ssh_probe_args(address), timeout=timeout)
    return rc == 0


async def wait_for_ssh(username, host, timeout, interval=1, dry_run=False):
    """Poll SSH connectivity to username@host until a no-op command succeeds.

    Purges any stale host key first; the probe itself accepts the new key
    without prompting.

    Raises:
        PollTimeout: if the budget of *timeout* seconds runs out first.
    """
    address = f"{username}@{host}" if username else host
    await forget_host_key(host, dry_run=dry_run)

    if dry_run:
        logger.info(f"[dry-run] Poll SSH every {interval}s (up to {timeout}s): {' '.join(ssh_probe_args(address))}")
        return

    deadline = _clock() + timeout
    ticks = 0

    logger.info(f"Waiting for ssh active on {address} ...")
    while True:
        if _clock() >= deadline:
            _end_progress(ticks)
            raise PollTimeout(f"Timed out after {timeout}s waiting on ssh connection for {address}")
        # A stalled ssh attempt must not outlive the budget
        remaining = max(1, min(SSH_CHECK_TIMEOUT, deadline - _clock()))
        if await _probe_ssh(address, timeout=remaining):
            _end_progress(ticks)
            logger.info(f"ssh connection successful for {address}")
            return
        progress()
        ticks += 1
        await _sleep(interval)
