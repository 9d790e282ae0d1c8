#!/usr/bin/env python3
"""Hosting provisioner CLI entrypoint."""

import argparse

from hostprov.commands.create import register_create_command
from hostprov.commands.reboot import register_reboot_command
from hostprov.config import DEFAULT_CONFIG_PATH
from hostprov.logging_setup import setup_cli_logging


def main():
    parser = argparse.ArgumentParser(description="Provision Linode hosting servers")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help=f"Settings file (default: {DEFAULT_CONFIG_PATH})")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    register_create_command(subparsers)
    register_reboot_command(subparsers)

    args = parser.parse_args()
    setup_cli_logging(verbose=args.verbose)
    args.func(args)


if __name__ == "__main__":
    main()
