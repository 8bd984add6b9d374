# Supabase tables: boards, board_columns
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

boards:
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id, not null, on delete cascade)
- organization_id: uuid (not null) - copied from the project, used by RLS policies
- name: text (not null)
- description: text (nullable)
- settings: jsonb (nullable)
- created_by: uuid (foreign key to auth.users.id, not null)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

board_columns:
- id: uuid (primary key)
- board_id: uuid (foreign key to boards.id, not null, on delete cascade)
- name: text (not null)
- color: text (not null, default: '#6B7280')
- wip_limit: integer (nullable) - null means no limit
- position: integer (not null) - 0-indexed
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

tasks (owned elsewhere, only read here):
- board_id: uuid (foreign key to boards.id) - a board with tasks cannot be deleted
"""
