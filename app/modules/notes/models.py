# Supabase table: notes
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:
- id: uuid (primary key)
- question_id: uuid (foreign key to questions.id, not null)
- content: text (not null) - trimmed, 1..2000 chars
- author_id: uuid (participants.id of the author, nullable for legacy rows) - never a facilitator id
- author_name: text (not null) - display name at the time of writing
- color_index: integer (not null) - 0..5, cosmetic
- timestamp: timestamp (default: now()) - arrival order, used for display ordering

All writes are inserts except facilitator moves (question_id) and deletes.
"""
