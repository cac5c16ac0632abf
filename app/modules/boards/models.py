# Supabase tables: boards, questions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
#
# Boards and questions have no stable identity across facilitator edits: saving a
# workshop deletes every board/question (and what hangs off them) and inserts new rows.

"""
Expected Supabase table structure:

boards:
- id: uuid (primary key)
- workshop_id: uuid (foreign key to workshops.id, not null)
- title: text (not null)
- time_limit: integer (not null) - minutes
- order_index: integer (not null) - 0-based display order
- color_index: integer (not null) - cosmetic
- created_at: timestamp (default: now())

questions:
- id: uuid (primary key)
- board_id: uuid (foreign key to boards.id, not null)
- title: text (not null)
- order_index: integer (not null)
- created_at: timestamp (default: now())
"""
