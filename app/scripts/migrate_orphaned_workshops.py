"""
Migrate Orphaned Workshops Script
Legacy workshops were created before facilitators signed in and have no
facilitator_id. This script lists them and assigns them all to one facilitator.
Run manually: python -m app.scripts.migrate_orphaned_workshops <facilitator_id> [--dry-run]
"""

import sys
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.database.supabase_client import get_supabase
from app.modules.workshops.service import WorkshopService
from app.core.dependencies import is_valid_uuid
from supabase import Client
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def find_orphaned_workshops(supabase: Client):
    """Workshops without an owning facilitator"""
    result = supabase.table("workshops")\
        .select("id, name, code, created_at")\
        .is_("facilitator_id", "null")\
        .execute()
    return result.data or []


def migrate(supabase: Client, facilitator_id: str, dry_run: bool = False) -> int:
    orphaned = find_orphaned_workshops(supabase)
    if not orphaned:
        logger.info("No workshops need migration")
        return 0

    logger.info(f"Found {len(orphaned)} workshop(s) without an owner:")
    for workshop in orphaned:
        logger.info(f"  - {workshop['name']} ({workshop['code']})")

    if dry_run:
        logger.info("Dry run, nothing changed")
        return 0

    migrated = WorkshopService(supabase).assign_orphaned_workshops(facilitator_id)
    logger.info(f"Migrated {len(migrated)} workshop(s) to facilitator {facilitator_id}")
    return len(migrated)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Assign legacy workshops without facilitator to a facilitator")
    parser.add_argument("facilitator_id", help="auth user id that becomes the owner")
    parser.add_argument("--dry-run", action="store_true", help="only list orphaned workshops")
    args = parser.parse_args(argv)

    if not is_valid_uuid(args.facilitator_id):
        logger.error(f"Not a valid facilitator id: {args.facilitator_id}")
        sys.exit(2)

    try:
        migrate(get_supabase(), args.facilitator_id, dry_run=args.dry_run)
    except Exception as e:
        logger.error(f"Error during migration: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
