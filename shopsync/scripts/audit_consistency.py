"""
Batch consistency audit between the identity provider and the shop database

Run periodically (cron) or by hand after webhook outages:

    python -m shopsync.scripts.audit_consistency
    python -m shopsync.scripts.audit_consistency --repair
    python -m shopsync.scripts.audit_consistency --delete-orphans org_123 org_456

Exit codes: 0 no unresolved drift, 1 drift remains, 2 fatal error.
"""

import argparse
import sys
from typing import List, Optional

import structlog

from shopsync.core.logging import configure_logging
from shopsync.services.auditor import AuditReport, ConsistencyAuditor
from shopsync.services.identity_provider import IdentityProviderClient, IdentityProviderError

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_DRIFT = 1
EXIT_FATAL = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Audit identity provider vs. database consistency")
    parser.add_argument(
        "--repair",
        action="store_true",
        help="Apply additive repairs (missing shops, renames, settings, memberships)",
    )
    parser.add_argument(
        "--delete-orphans",
        nargs="+",
        metavar="SHOP_ID",
        default=[],
        help="Delete these shops if the audit confirms they are orphaned",
    )
    return parser.parse_args(argv)


def run_audit(auditor: ConsistencyAuditor, delete_orphans: List[str]) -> AuditReport:
    """Run one pass and the optional confirmed orphan deletion"""
    report = auditor.run()

    if delete_orphans:
        outcome = auditor.delete_orphaned_tenants(report, delete_orphans)
        deleted = [shop_id for shop_id, ok in outcome.items() if ok]
        report.orphaned_tenants = [shop_id for shop_id in report.orphaned_tenants if shop_id not in deleted]
        logger.info(f"Deleted orphaned shops: {deleted}")

    return report


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the audit job"""
    configure_logging()
    args = parse_args(argv)

    logger.info("=" * 80)
    logger.info("Starting Consistency Audit")
    logger.info("=" * 80)

    try:
        from shopsync.core.database import session_factory

        with IdentityProviderClient() as provider:
            auditor = ConsistencyAuditor(provider, session_factory, repair=args.repair)
            report = run_audit(auditor, args.delete_orphans)
    except IdentityProviderError as e:
        logger.error(f"Identity provider unavailable: {e}")
        return EXIT_FATAL
    except Exception as e:
        logger.error(f"Fatal error in audit job: {e}")
        return EXIT_FATAL

    print(report.model_dump_json(indent=2))

    logger.info("=" * 80)
    logger.info("Consistency Audit Complete")
    logger.info("=" * 80)

    return EXIT_DRIFT if report.has_unresolved_drift else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
