"""Main CLI entry point for the SuiteCRM toolkit."""

import argparse
import json
import logging
import sys

from suitecrm_toolkit.client import SuiteCRM
from suitecrm_toolkit.core import (
    ConfigError,
    ModuleKind,
    ProtocolError,
    config_from_env,
    list_modules,
    profile_path,
    save_config_file,
)

logger = logging.getLogger(__name__)

MODULE_NAMES = [kind.value for kind in ModuleKind]


def setup_logging(verbose: bool = False):
    """Configure logging for the CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def fail(message: str):
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def open_crm(args) -> SuiteCRM:
    """Build and log in a SuiteCRM client from --profile or the environment."""
    if args.profile:
        crm = SuiteCRM.from_file(profile_path(args.profile))
    else:
        crm = SuiteCRM.from_env()
    try:
        return crm.connect()
    except ProtocolError:
        crm.close()
        raise


def parse_where(pairs: list[str] | None) -> dict[str, str]:
    """Turn ['field=value', ...] into search criteria."""
    criteria = {}
    for pair in pairs or []:
        field, sep, value = pair.partition("=")
        if not sep or not field.strip():
            raise ValueError(f"Invalid --where expression '{pair}'. Expected field=value.")
        criteria[field.strip()] = value
    return criteria


def parse_fields(value: str | None) -> list[str] | None:
    if not value:
        return None
    return [f.strip() for f in value.split(",") if f.strip()]


def print_json(data):
    print(json.dumps(data, indent=2, default=str))


def cmd_check(args):
    """Handle the check command."""
    try:
        with open_crm(args) as crm:
            print(f"Connected to {crm.config.url} as {crm.config.username}")
            if crm.client.user_id:
                print(f"User ID: {crm.client.user_id}")
    except (ConfigError, ProtocolError) as e:
        fail(str(e))


def cmd_get(args):
    """Handle the get command."""
    try:
        with open_crm(args) as crm:
            record = crm.records(args.module).find_by_id(args.id, parse_fields(args.fields))
    except (ConfigError, ProtocolError) as e:
        fail(str(e))

    if record is None:
        fail(f"{args.module} record '{args.id}' not found")
    print_json(record)


def cmd_search(args):
    """Handle the search command."""
    try:
        criteria = parse_where(args.where)
    except ValueError as e:
        fail(str(e))

    try:
        with open_crm(args) as crm:
            records = crm.records(args.module).search(
                criteria,
                parse_fields(args.fields),
                limit=args.limit,
                offset=args.offset,
            )
    except (ConfigError, ProtocolError) as e:
        fail(str(e))

    if not records:
        print(f"No {args.module} records found.")
        return
    print_json(records)


def cmd_stats(args):
    """Handle the stats command."""
    try:
        with open_crm(args) as crm:
            stats = crm.records(args.module).statistics(*args.by, limit=args.limit)
    except (ConfigError, ProtocolError) as e:
        fail(str(e))

    print(f"{args.module}: {stats['total']} records")
    for field in args.by:
        print()
        print(f"  By {field}:")
        for value, count in sorted(stats[f"by_{field}"].items(), key=lambda item: -item[1]):
            print(f"    {value}: {count}")


def cmd_modules(args):
    """Handle the modules command."""
    specs = list_modules()
    print(f"Supported modules ({len(specs)}):")
    print()
    for spec in specs:
        required = ", ".join(spec.required_fields) or "-"
        print(f"  {spec.module_name:<16} required: {required}")


def cmd_save_profile(args):
    """Handle the save-profile command."""
    try:
        config = config_from_env()
        path = save_config_file(config, profile_path(args.name), include_password=args.include_password)
    except ConfigError as e:
        fail(str(e))

    print(f"Saved profile '{args.name}' to {path}")
    if not args.include_password:
        print("The password was not stored; SUITE_CRM_PASSWORD will be used when loading it.")


def main(argv: list[str] | None = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="suitecrm-toolkit",
        description="SuiteCRM REST v4_1 toolkit",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--profile",
        help="Connection profile name (default: SUITE_CRM_* environment variables)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Check command
    check_parser = subparsers.add_parser("check", help="Log in and out to verify the connection")
    check_parser.set_defaults(func=cmd_check)

    # Get command
    get_parser = subparsers.add_parser("get", help="Fetch one record by ID")
    get_parser.add_argument("module", choices=MODULE_NAMES, help="Module name (e.g., 'Accounts')")
    get_parser.add_argument("id", help="Record ID")
    get_parser.add_argument("--fields", help="Comma-separated fields to return")
    get_parser.set_defaults(func=cmd_get)

    # Search command
    search_parser = subparsers.add_parser("search", help="Search records in a module")
    search_parser.add_argument("module", choices=MODULE_NAMES, help="Module name (e.g., 'Accounts')")
    search_parser.add_argument(
        "--where",
        action="append",
        metavar="FIELD=VALUE",
        help="Equality condition (repeatable)",
    )
    search_parser.add_argument("--fields", help="Comma-separated fields to return")
    search_parser.add_argument("--limit", type=int, default=20, help="Maximum records (default: 20)")
    search_parser.add_argument("--offset", type=int, default=0, help="Result offset (default: 0)")
    search_parser.set_defaults(func=cmd_search)

    # Stats command
    stats_parser = subparsers.add_parser("stats", help="Count records grouped by field")
    stats_parser.add_argument("module", choices=MODULE_NAMES, help="Module name (e.g., 'Cases')")
    stats_parser.add_argument("--by", action="append", required=True, metavar="FIELD", help="Field to group by (repeatable)")
    stats_parser.add_argument("--limit", type=int, default=1000, help="Maximum records scanned (default: 1000)")
    stats_parser.set_defaults(func=cmd_stats)

    # Modules command
    modules_parser = subparsers.add_parser("modules", help="List supported modules")
    modules_parser.set_defaults(func=cmd_modules)

    # Save-profile command
    save_parser = subparsers.add_parser("save-profile", help="Save the environment configuration as a profile")
    save_parser.add_argument("name", help="Profile name")
    save_parser.add_argument("--include-password", action="store_true", help="Store the password in the profile")
    save_parser.set_defaults(func=cmd_save_profile)

    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
