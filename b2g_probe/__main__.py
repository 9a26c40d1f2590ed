"""
Entry point for the b2g_probe component.
"""

import argparse
import asyncio
import logging
import sys

from .application.domain import RevisionKind
from .application.exceptions import ProbeError
from .infrastructure.containers import Container
from .infrastructure.models import RevisionReport

logger = logging.getLogger(__name__)

_KINDS = {
    "gecko": [RevisionKind.GECKO],
    "gaia": [RevisionKind.GAIA],
    "all": [RevisionKind.GECKO, RevisionKind.GAIA],
}


def setup_logging(level: str):
    """Applies basic logging configuration."""
    logging.basicConfig(level=level)


async def show_revisions(container: Container, args: argparse.Namespace) -> int:
    """Prints the requested revisions as JSON."""

    probe_service = container.probe_service()
    revisions, errors = await probe_service.run(_KINDS[args.kind])

    report = RevisionReport(
        gecko=revisions.get(RevisionKind.GECKO),
        gaia=revisions.get(RevisionKind.GAIA),
        errors={kind.value: message for kind, message in errors.items()},
    )
    print(report.model_dump_json(indent=2))

    return 1 if errors else 0


async def reboot(container: Container, args: argparse.Namespace) -> int:
    print(await container.device_util().reboot())
    return 0


async def restart_b2g(container: Container, args: argparse.Namespace) -> int:
    print(await container.device_util().restart_b2g())
    return 0


async def kill(container: Container, args: argparse.Namespace) -> int:
    await container.device_util().kill(args.pid)
    return 0


async def push(container: Container, args: argparse.Namespace) -> int:
    await container.device_util().push(args.local, args.remote)
    return 0


async def pull(container: Container, args: argparse.Namespace) -> int:
    await container.device_util().pull(args.remote, args.local)
    return 0


async def run_application(args: argparse.Namespace) -> int:
    """Wires and runs the application using the DI container."""

    container = Container()
    container.cli_args.from_dict(vars(args))

    try:
        config = container.config()
        setup_logging(level=args.log_level or config.logging.level)
        return await args.handler(container, args)
    except ProbeError as e:
        logger.error(f"An application error occurred: {e}")
        return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="B2G device revision probe")

    parser.add_argument(
        "--serial",
        help="Serial of the target device (overrides adb.serial).",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Overrides logging.level from the settings file.",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    revisions_parser = commands.add_parser(
        "revisions", help="Print the Gecko and/or Gaia revision as JSON."
    )
    revisions_parser.add_argument(
        "--kind", choices=sorted(_KINDS), default="all",
        help="Which revision to resolve.",
    )
    revisions_parser.set_defaults(handler=show_revisions)

    commands.add_parser(
        "reboot", help="Reboot and print the device time in ms."
    ).set_defaults(handler=reboot)

    commands.add_parser(
        "restart-b2g", help="Restart B2G and print the device time in ms."
    ).set_defaults(handler=restart_b2g)

    kill_parser = commands.add_parser("kill", help="Kill a device process.")
    kill_parser.add_argument("pid", type=int)
    kill_parser.set_defaults(handler=kill)

    push_parser = commands.add_parser("push", help="Push a file to device.")
    push_parser.add_argument("local")
    push_parser.add_argument("remote")
    push_parser.set_defaults(handler=push)

    pull_parser = commands.add_parser("pull", help="Pull a file from device.")
    pull_parser.add_argument("remote")
    pull_parser.add_argument("local", nargs="?")
    pull_parser.set_defaults(handler=pull)

    return parser


def main():
    cli_args = build_parser().parse_args()
    sys.exit(asyncio.run(run_application(cli_args)))


if __name__ == "__main__":
    main()
