# Supabase tables: projects, project_members, roles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

projects:
- id: uuid (primary key)
- organization_id: uuid (foreign key to organizations.id, not null, on delete cascade)
- name: text (not null)
- slug: text (not null) - unique per organization
- description: text (nullable)
- status: text (not null, default: 'active') - values: active, archived, completed, on_hold
- color: text (nullable) - #RRGGBB
- icon: text (nullable)
- is_favorite: boolean (default: false)
- settings: jsonb (nullable)
- created_by: uuid (foreign key to auth.users.id, not null)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
- archived_at: timestamp (nullable) - set while status = 'archived'
- unique constraint on (organization_id, slug)

project_members:
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id, not null, on delete cascade)
- user_id: uuid (foreign key to auth.users.id, not null)
- role_id: uuid (foreign key to roles.id, not null)
- invited_by: uuid (nullable)
- joined_at: timestamp (default: now())
- unique constraint on (project_id, user_id)

roles:
- id: uuid (primary key)
- name: text (not null) - e.g. "Admin", "Member", "Viewer"
- organization_id: uuid (nullable) - null for system roles shared by all organizations
- description: text (nullable)
"""
