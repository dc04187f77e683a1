"""CPI command line: run the create-VM path outside the director.

Usage examples::

    cpi -c '{"registry": {"endpoint": "http://registry:3333"}}' \\
        create-vm --agent-id agent-1 --image-id ami-123 \\
        --resource-pool '{"instance_type": "m3.medium", "key_name": "bosh"}' \\
        --networks '{"default": {"type": "dynamic"}}'
    cpi -c @cpi.json select-availability-zone --disk vol-1 --disk vol-2
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any


def _json_arg(value: str) -> Any:
    """Parse a JSON argument, reading it from a file when prefixed with ``@``."""
    if value.startswith("@"):
        value = Path(value[1:]).read_text()
    return json.loads(value)


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ``cpi`` CLI.

    Returns:
        Configured :class:`~argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(
        prog="cpi",
        description="AWS CPI VM provisioning",
    )
    parser.add_argument(
        "--provider", "-p",
        default="aws",
        choices=["aws"],
        help="Cloud provider",
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default="{}",
        help='JSON config string or @file (e.g. \'{"registry":{"endpoint":"http://registry:3333"}}\')',
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-vm", help="Create a VM and register its agent settings")
    create.add_argument("--agent-id", required=True)
    create.add_argument("--image-id", required=True)
    create.add_argument("--resource-pool", required=True, help="JSON resource pool spec or @file")
    create.add_argument("--networks", required=True, help="JSON network spec or @file")
    create.add_argument("--disk", action="append", dest="disks", help="Persistent disk id (repeatable)")
    create.add_argument("--env", default="{}", help="JSON agent env or @file")
    create.add_argument(
        "--timeout", type=float, default=None, help="Overall budget for the call in seconds"
    )

    select = sub.add_parser(
        "select-availability-zone", help="Print the zone a VM with these disks would use"
    )
    select.add_argument("--disk", action="append", dest="disks", help="Persistent disk id (repeatable)")
    select.add_argument("--zone", default=None, help="Preferred availability zone")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parses arguments, builds a CPI via :func:`cpi.factory.cloud_factory`
    and runs the requested command.  Errors are printed to stderr with
    exit status 1.

    Args:
        argv: Optional argument list (defaults to ``sys.argv``).
    """
    parser = _build_parser()
    ns = parser.parse_args(argv)

    try:
        config: dict[str, Any] = _json_arg(ns.config)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Invalid --config: {e}", file=sys.stderr)
        sys.exit(1)

    # Lazy-import to avoid loading boto3 for --help
    from pydantic import ValidationError

    from cpi.base.exceptions import CPIError
    from cpi.factory import cloud_factory

    try:
        cloud = cloud_factory(ns.provider, config)
    except (ValueError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if ns.command == "create-vm":
            result = cloud.create_vm(
                ns.agent_id,
                ns.image_id,
                _json_arg(ns.resource_pool),
                _json_arg(ns.networks),
                ns.disks,
                _json_arg(ns.env),
                timeout=ns.timeout,
            )
        else:
            result = cloud.select_availability_zone(ns.disks, ns.zone)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        print(f"Invalid argument: {e}", file=sys.stderr)
        sys.exit(1)
    except CPIError as e:
        print(f"Operation failed: {e}", file=sys.stderr)
        sys.exit(1)

    print(result)


if __name__ == "__main__":
    main()
