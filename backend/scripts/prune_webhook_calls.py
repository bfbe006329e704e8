"""
Delete stored webhook calls older than the retention window.

Usage:
    python -m scripts.prune_webhook_calls            # uses DELETE_AFTER_DAYS
    python -m scripts.prune_webhook_calls --days 7
    python -m scripts.prune_webhook_calls --dry-run
"""

import argparse
import sys

from sqlalchemy import func, select

from webhook_client.application.services.retention_service import (
    RetentionConfig,
    prune_webhook_calls,
    select_prunable,
)
from webhook_client.core.config import settings
from webhook_client.core.errors import InvalidConfig
from webhook_client.infrastructure.db.session import SessionLocal


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Prune webhook calls past the retention window")
    parser.add_argument("--days", type=int, default=None, help="Override DELETE_AFTER_DAYS")
    parser.add_argument("--dry-run", action="store_true", help="Only count the calls that would be deleted")
    args = parser.parse_args(argv)

    try:
        config = RetentionConfig(args.days) if args.days is not None else RetentionConfig.from_settings(settings)
    except InvalidConfig as exc:
        print(f"Invalid retention config: {exc}", file=sys.stderr)
        return 2

    with SessionLocal() as db:
        if args.dry_run:
            prunable = select_prunable(config).subquery()
            count = db.execute(select(func.count()).select_from(prunable)).scalar_one()
            print(f"Would delete {count} webhook call(s) older than {config.delete_after_days} day(s)")
            return 0
        deleted = prune_webhook_calls(db, config)

    print(f"Deleted {deleted} webhook call(s) older than {config.delete_after_days} day(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
