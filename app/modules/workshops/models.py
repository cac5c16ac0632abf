# Supabase table: workshops
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
#
# Migration: add column version integer NOT NULL DEFAULT 0;
# Every state-machine write is conditional on the version it read (see WorkshopService._cas_update).

"""
Expected Supabase table structure:
- id: uuid (primary key)
- name: text (not null)
- date: date (nullable)
- code: text (not null, unique) - 6 chars, A-Z0-9, join code shown to participants
- facilitator_id: uuid (foreign key to auth.users.id, nullable only for legacy rows)
- status: text (not null, default: 'draft') - values: draft, active
- active_board_id: uuid (foreign key to boards.id, nullable)
- timer_running: boolean (not null, default: false)
- timer_started_at: timestamp (nullable) - set while running
- time_remaining: integer (nullable) - seconds left when paused, null while running or reset
- version: integer (not null, default: 0) - optimistic concurrency token
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
"""
