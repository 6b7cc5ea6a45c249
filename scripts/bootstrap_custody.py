"""
Operator entry point for bringing up a custody deployment.

Usage:
    python scripts/bootstrap_custody.py --initializer deployer
    python scripts/bootstrap_custody.py --initializer deployer --admin ops \
        --grant Manufacturer=factory-1 --grant Transporter=carrier-7
    python scripts/bootstrap_custody.py --initializer deployer --database --migrate
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _parse_grant(value: str) -> tuple[str, str]:
    capability, sep, actor_id = value.partition("=")
    if not sep or not capability.strip() or not actor_id.strip():
        raise argparse.ArgumentTypeError(
            f"grant must look like CAPABILITY=ACTOR, got '{value}'"
        )
    return capability.strip(), actor_id.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bootstrap the custody tracker.")
    parser.add_argument(
        "--initializer",
        required=True,
        help="Actor bringing the system up. Becomes administrator if --admin is absent.",
    )
    parser.add_argument("--admin", default=None, help="Initial administrator actor id.")
    parser.add_argument(
        "--grant",
        action="append",
        default=[],
        type=_parse_grant,
        metavar="CAPABILITY=ACTOR",
        help="Initial capability grant. Repeatable.",
    )
    parser.add_argument(
        "--database",
        action="store_true",
        help="Use the Django-backed ledger and grant tables.",
    )
    parser.add_argument(
        "--migrate",
        action="store_true",
        help="Apply migrations before bootstrapping (with --database).",
    )
    return parser


def run(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
    import django
    from django.apps import apps

    if not apps.ready:
        django.setup()

    if args.database and args.migrate:
        from django.core.management import call_command

        call_command("migrate", interactive=False, verbosity=0)

    from core.commands.errors import CommandError
    from engines.custody.bootstrap import build_custody_service

    try:
        service = build_custody_service(
            initializer_id=args.initializer,
            admin_id=args.admin,
            use_database=args.database,
            initial_grants=args.grant,
        )
    except CommandError as exc:
        print(f"bootstrap failed: {exc}", file=sys.stderr)
        return 1

    actors = [service.admin_id] + [actor_id for _, actor_id in args.grant]
    print(f"administrator: {service.admin_id}")
    for actor_id in dict.fromkeys(actors):
        roles = ", ".join(service.get_roles(actor_id)) or "-"
        print(f"  {actor_id}: {roles}")
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
