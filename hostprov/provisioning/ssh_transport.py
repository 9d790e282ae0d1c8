"""SSH transport: probe, copy files to, and launch commands on the new instance."""

import logging
import shlex

from hostprov.provisioning.shell import run_shell_cmd

logger = logging.getLogger(__name__)

_COMMON_OPTS = [
    # The instance is brand new: record its host key without prompting.
    "-o", "StrictHostKeyChecking=no",
    "-o", "BatchMode=yes",
    "-o", "ServerAliveInterval=60",
    "-o", "ServerAliveCountMax=5",
]


def ssh_base_args(server, ssh_port=22):
    """Build base SSH arguments."""
    args = ["ssh", *_COMMON_OPTS]
    if ssh_port and ssh_port != 22:
        args += ["-p", str(ssh_port)]
    args.append(server)
    return args


def ssh_probe_args(server, ssh_port=22, connect_timeout=5):
    """SSH arguments for a no-op connection attempt."""
    args = ssh_base_args(server, ssh_port)
    # Add ConnectTimeout for fast failure during polling
    args.insert(-1, "-o")
    args.insert(-1, f"ConnectTimeout={connect_timeout}")
    args.append("true")
    return args


async def forget_host_key(host, dry_run=False):
    """Remove any stale key for *host* from ~/.ssh/known_hosts.

    Addresses get reused across provisioning runs, so an old key would
    otherwise block the first connection.
    """
    rc, _, stderr = await run_shell_cmd(["ssh-keygen", "-R", host], dry_run=dry_run)
    if rc != 0:
        # Missing known_hosts file or no entry for host
        logger.debug(f"ssh-keygen -R {host}: {stderr.strip()}")


async def scp_files(local_paths, server, remote_path, ssh_port=22, timeout=300, dry_run=False):
    """Copy one or more local files to the remote server via SCP.

    Returns:
        (returncode, stderr) tuple
    """
    scp_args = ["scp", *_COMMON_OPTS]
    if ssh_port and ssh_port != 22:
        scp_args += ["-P", str(ssh_port)]
    scp_args += [*local_paths, f"{server}:{remote_path}"]

    rc, _, stderr = await run_shell_cmd(scp_args, dry_run=dry_run, timeout=timeout)
    return rc, stderr


def detached_command(script):
    """Shell command that starts *script* in the background and returns at once."""
    inner = f"nohup ./{script} > /dev/null 2>&1 &"
    return f"sh -c {shlex.quote(inner)}"


async def launch_detached(server, script, ssh_port=22, timeout=60, dry_run=False):
    """Start *script* on the server without waiting for it to finish.

    Only the launch itself is checked; the script's own outcome is never
    observed.

    Returns:
        (returncode, stderr) tuple
    """
    args = ssh_base_args(server, ssh_port)
    args.append(detached_command(script))
    rc, _, stderr = await run_shell_cmd(args, dry_run=dry_run, timeout=timeout)
    return rc, stderr
