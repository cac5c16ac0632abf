# Supabase table: ai_analyses
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:
- id: uuid (primary key)
- board_id: uuid (foreign key to boards.id, not null)
- analysis: text (not null) - markdown returned by the model
- created_at: timestamp (default: now())

Append-only per board. The newest row is the one shown; older rows stay
listable and can be deleted one by one. Rows go away with their board when a
workshop edit replaces the boards.
"""
