"""Reboot command: reboot an existing linode by its label."""

import logging

from hostprov.commands.common import resolve_token, run_or_exit
from hostprov.config import load_settings, validate_settings
from hostprov.provisioning.handoff import reboot_by_label
from hostprov.provisioning.linode import LinodeClient

logger = logging.getLogger(__name__)


def handle_reboot(args):
    """CLI handler for 'reboot'."""
    run_or_exit(_handle_reboot(args), parser=args.command_parser)


async def _handle_reboot(args):
    raw_settings = load_settings(args.config)
    validate_settings(raw_settings)

    token = resolve_token(args.token, dry_run=args.dry_run)
    client = LinodeClient(token, api_url=raw_settings["api_url"], dry_run=args.dry_run)
    return await reboot_by_label(client, args.label)


def register_reboot_command(subparsers):
    """Register the 'reboot' subcommand."""
    parser = subparsers.add_parser("reboot", help="Reboot a linode by label")
    parser.add_argument("label", help="Label of the linode to reboot (as shown at https://cloud.linode.com/linodes)")
    parser.add_argument("--token", default=None, help="Linode API token (fallback: LINODE_TOKEN env var)")
    parser.add_argument("--dry-run", action="store_true", help="Print requests without executing")
    parser.set_defaults(func=handle_reboot, command_parser=parser)
