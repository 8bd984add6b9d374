# Supabase table: custom_field_definitions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

custom_field_definitions:
- id: uuid (primary key)
- board_id: uuid (foreign key to boards.id, not null, on delete cascade)
- name: text (not null)
- field_type: text (not null) - values: text, number, date, select, checkbox
- config: jsonb (nullable) - shape depends on field_type
- required: boolean (default: false)
- position: integer (not null) - 0-indexed display order
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Per-task values live in the task tables and reference custom_field_definitions.id
with on delete cascade, so deleting a definition removes its stored values.
"""
