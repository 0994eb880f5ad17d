"""Command-line entry point for one provisioning run.

This module serves as a CLI wrapper around benutzerverwaltung.core.provisioning_service.
"""
from __future__ import annotations
import argparse
import logging
import sys

from .config.settings import load_settings
from .core.errors import ProvisioningError, SourceError
from .core.provisioning_service import run_provisioning

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    # urllib3 debug output would echo request URLs with query strings
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="benutzerverwaltung",
        description="Manage user accounts and roles across Keycloak, authentik and GitLab.",
    )
    parser.add_argument("-c", "--config", required=True, help="Path to the JSON configuration")
    parser.add_argument("--dry-run", action="store_true", help="Compute and log plans without applying them")
    parser.add_argument("--operator", default="automation",
                        help="Operator identifier for audit logs (default: automation)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Command-line entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        settings = load_settings(args.config)
        plans = run_provisioning(settings, dry_run=args.dry_run, operator=args.operator)
    except SourceError as e:
        logger.error("[sync] Cannot load users: %s", e)
        sys.exit(1)
    except ProvisioningError as e:
        logger.error("[sync] Error: %s", e)
        sys.exit(1)

    for name, plan in plans.items():
        logger.info("[sync] %s: %s%s", name, plan.summary(), " (dry run)" if args.dry_run else "")


if __name__ == "__main__":
    main()
