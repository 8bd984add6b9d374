# Supabase tables: organizations, organization_members
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

organizations:
- id: uuid (primary key)
- name: text (not null)
- slug: text (not null, unique) - URL identifier, immutable after creation
- description: text (nullable)
- invite_code: text (not null, unique) - 8 chars, uppercase letters and digits
- created_by: uuid (foreign key to auth.users.id, not null) - the owner
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

organization_members:
- id: uuid (primary key)
- organization_id: uuid (foreign key to organizations.id, not null, on delete cascade)
- user_id: uuid (foreign key to auth.users.id, not null)
- role: text (not null, default: 'member') - values: owner, admin, member
- joined_at: timestamp (default: now())
- unique constraint on (organization_id, user_id)

Exactly one owner row exists per organization: the creator's, inserted together
with the organization. Deleting an organization cascades to its members,
projects, boards and custom fields.
"""
