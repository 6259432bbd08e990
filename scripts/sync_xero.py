"""
Xero Sync Script
Run the Xero batch jobs from the command line (same code paths as the cron endpoints).

Usage:
    python scripts/sync_xero.py sync [--business-id UUID]
    python scripts/sync_xero.py refresh
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional
from uuid import UUID

# Add parent directory to path to import app modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.database.connection import async_session_factory, close_db
from app.integrations.xero.service import XeroConnectionService
from app.integrations.xero.sync_service import XeroSyncService


def print_summary(summary: dict[str, int]) -> None:
    print("-" * 60)
    for key, value in summary.items():
        print(f"  {key:<12} {value}")
    print("-" * 60)


async def sync(business_id: Optional[UUID]) -> int:
    """Sync one business or every active connection. Returns failure count."""
    async with async_session_factory() as session:
        sync_service = XeroSyncService(session)

        if business_id:
            connection = await XeroConnectionService(session).get_connection_by_business(
                business_id, active_only=True
            )
            if not connection:
                print(f"\n❌ No active Xero connection for business {business_id}")
                return 1
            result = await sync_service.sync_connection(connection)
            icon = "✅" if result.succeeded else "❌"
            print(f"\n{icon} {result.tenant_name}: {result.message}")
            return 0 if result.succeeded else 1

        batch = await sync_service.sync_all()

    print(f"\n📊 Synced {len(batch.results)} connections")
    for result in batch.results:
        icon = {"success": "✅", "failed": "❌"}.get(result.status.value, "⏭️ ")
        print(f"  {icon} {result.tenant_name or result.business_id}: {result.message}")
    print_summary(batch.summary)
    return batch.summary["failed"]


async def refresh() -> int:
    """Proactively refresh expiring tokens. Returns failure count."""
    async with async_session_factory() as session:
        batch = await XeroSyncService(session).refresh_all()

    print(f"\n🔑 Checked {len(batch.results)} connections")
    for result in batch.results:
        print(f"  • {result.tenant_name or result.business_id}: {result.status.value} ({result.message})")
    print_summary(batch.summary)
    return batch.summary["failed"] + batch.summary["deactivated"]


async def main() -> None:
    """Main script entry point."""
    parser = argparse.ArgumentParser(description="Run Xero batch jobs")
    parser.add_argument("command", choices=["sync", "refresh"])
    parser.add_argument("--business-id", type=UUID, default=None)
    args = parser.parse_args()

    print("=" * 60)
    print(f"🔄 Xero {args.command}")
    print("=" * 60)

    try:
        if args.command == "sync":
            failures = await sync(args.business_id)
        else:
            failures = await refresh()
    finally:
        await close_db()

    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    asyncio.run(main())
