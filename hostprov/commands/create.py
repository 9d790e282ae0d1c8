"""Create command: prompt for missing values, then provision and hand off."""

import logging
import sys

from hostprov.commands.common import resolve_token, run_or_exit
from hostprov.config import load_settings, validate_settings
from hostprov.errors import InputError, ProviderError
from hostprov.provisioning.handoff import provision_hosting
from hostprov.provisioning.linode import LinodeClient
from hostprov.provisioning.types import HostingRequest

logger = logging.getLogger(__name__)

# (attribute, display name, client coroutine for a numbered menu or None for free text)
REQUIRED_FIELDS = [
    ("label", "LABEL", None),
    ("region", "REGION", "list_regions"),
    ("type", "TYPE", "list_types"),
    ("server_name", "SERVERNAME", None),
    ("username", "USERNAME", None),
    ("domain_name", "DOMAINNAME", None),
]


def _pick(options, answer):
    """Return the option for a 1-based menu *answer*, or "" if invalid."""
    try:
        index = int(answer.strip())
    except ValueError:
        return ""
    if 1 <= index <= len(options):
        return options[index - 1]
    return ""


async def prompt_missing(values, client, input_fn=input):
    """Ask the operator for every required value not given on the command line.

    Free-text values are typed in; region and type are chosen from numbered
    menus built from the provider catalogue. Empty or invalid answers are
    asked again; once stdin closes no further values are asked for.
    """
    for field, name, lister in REQUIRED_FIELDS:
        while not values.get(field):
            try:
                if lister:
                    options = await getattr(client, lister)()
                    if not options:
                        raise ProviderError(f"Provider returned no options for {name}")
                    print(f"========= Options for {name}: ", file=sys.stderr)
                    for number, option in enumerate(options, start=1):
                        print(f"{number:6d}\t{option}", file=sys.stderr)
                    answer = input_fn(
                        f"Please provide {name} (required) (Enter the number of your selection from options above): "
                    )
                    values[field] = _pick(options, answer)
                else:
                    values[field] = input_fn(f"Please provide {name} (required): ").strip()
            except EOFError:
                return values
            if not values.get(field):
                logger.info(f"{name} is a required value. Trying again...")
    return values


def check_required(values):
    """Build the HostingRequest, reporting every field that is still empty.

    Raises:
        InputError: listing each missing field.
    """
    missing = []
    for field, name, _ in REQUIRED_FIELDS:
        if not values.get(field):
            logger.error(f"Missing required value for {name}")
            missing.append(name)
    if missing:
        raise InputError(f"Missing required values: {', '.join(missing)}", missing=missing)
    return HostingRequest(**{field: values[field] for field, _, _ in REQUIRED_FIELDS})


def confirm(request, image, input_fn=input):
    """Show the values about to be used and wait for ENTER."""
    logger.info("Beginning linode creation with these values:")
    for field, name, _ in REQUIRED_FIELDS:
        logger.info(f"{name} {getattr(request, field)}")
    logger.info(f"IMAGE: {image}")
    try:
        input_fn("Strike ENTER to continue or CTRL+C to abort.")
    except EOFError:
        raise InputError("No confirmation received; pass -y to skip confirmation.") from None
    logger.info("Continuing.")


# ── CLI handler ────────────────────────────────────────────────────


def handle_create(args):
    """CLI handler for 'create'."""
    result = run_or_exit(_handle_create(args), parser=args.command_parser)
    print(result.password_log_path)


async def _handle_create(args, input_fn=input):
    raw_settings = load_settings(args.config)
    validate_settings(raw_settings)

    token = resolve_token(args.token, dry_run=args.dry_run)
    client = LinodeClient(token, api_url=raw_settings["api_url"], dry_run=args.dry_run)

    values = {field: getattr(args, field) for field, _, _ in REQUIRED_FIELDS}
    await prompt_missing(values, client, input_fn=input_fn)
    request = check_required(values)

    if not args.yes:
        confirm(request, raw_settings["image"], input_fn=input_fn)

    return await provision_hosting(request, raw_settings, client, dry_run=args.dry_run)


# ── Registration ───────────────────────────────────────────────────


def register_create_command(subparsers):
    """Register the 'create' subcommand."""
    parser = subparsers.add_parser(
        "create",
        help="Create a linode and run hosting setup on it",
        description=(
            "Create a linode with the configured image and perform hosting setup on it. "
            "Prompts for required options that are not provided."
        ),
    )
    parser.add_argument("-l", "--label", default=None, help="Linode label")
    parser.add_argument("-r", "--region", default=None, help="Linode region (see https://www.linode.com/docs/api/regions/)")
    parser.add_argument("-t", "--type", default=None, help="Linode type (see https://www.linode.com/docs/api/linode-types/)")
    parser.add_argument("-s", "--server-name", dest="server_name", default=None, help="Server/host name")
    parser.add_argument("-u", "--username", default=None, help="Customer user name")
    parser.add_argument("-d", "--domain-name", dest="domain_name", default=None, help="Customer domain name")
    parser.add_argument("-y", "--yes", action="store_true", help="Do not prompt for confirmation before creating the linode")
    parser.add_argument("--token", default=None, help="Linode API token (fallback: LINODE_TOKEN env var)")
    parser.add_argument("--dry-run", action="store_true", help="Print requests and remote commands without executing")
    parser.set_defaults(func=handle_create, command_parser=parser)
