"""
Seed Project Roles Script
Populates the system project roles (Admin, Member, Viewer) from the config.
Safe to run repeatedly; existing roles only get their description refreshed.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.config.permissions_config import PROJECT_ROLES
from app.database.supabase_client import get_service_supabase
from supabase import Client
import logging

logger = logging.getLogger(__name__)


def seed_project_roles(supabase: Client):
    """Create or refresh the system roles; returns (created, updated)"""
    logger.info("Seeding project roles...")
    created_count = 0
    updated_count = 0

    for role in PROJECT_ROLES:
        existing = supabase.table("roles")\
            .select("id, organization_id")\
            .eq("name", role["name"])\
            .execute()
        system_role = next((r for r in existing.data or [] if r.get("organization_id") is None), None)

        if system_role:
            supabase.table("roles")\
                .update({"description": role["description"]})\
                .eq("id", system_role["id"])\
                .execute()
            updated_count += 1
            logger.debug(f"Updated role: {role['name']}")
        else:
            supabase.table("roles").insert({
                "name": role["name"],
                "description": role["description"],
                "organization_id": None
            }).execute()
            created_count += 1
            logger.debug(f"Created role: {role['name']}")

    logger.info(f"Project roles seeded: {created_count} created, {updated_count} updated")
    return created_count, updated_count


def main():
    logging.basicConfig(level=logging.INFO)
    seed_project_roles(get_service_supabase())


if __name__ == "__main__":
    main()
