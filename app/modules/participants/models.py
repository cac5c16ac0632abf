# Supabase table: participants
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:
- id: uuid (primary key, default gen_random_uuid()) - doubles as the participant's bearer token
- workshop_id: uuid (foreign key to workshops.id, not null)
- name: text (not null) - 2..100 chars, trimmed
- color_index: integer (not null) - 0..5, cosmetic
- joined_at: timestamp (default: now())

Participants have no password. Rows are removed only by the owning facilitator,
after every note they authored (notes.author_id) has been removed.
"""
