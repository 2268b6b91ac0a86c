# Supabase tables: teams, team_members, team_invitations, team_activities
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

teams:
- id: uuid (primary key)
- name: text (not null)
- description: text (nullable)
- owner_id: uuid (foreign key to user_profiles.id, not null) - creator
- settings: jsonb (not null) - visibility, allow_member_invites, require_approval_for_joining,
  default_member_role, plan_sharing_enabled, activity_logging_enabled
- is_active: boolean (default: true) - false once deleted
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

team_members:
- id: uuid (primary key)
- team_id: uuid (foreign key to teams.id, not null)
- user_id: uuid (foreign key to user_profiles.id, not null)
- role: text (not null, default: 'member') - values: owner, admin, member, viewer
- status: text (not null, default: 'active') - values: active, pending, inactive
- invited_by: uuid (nullable)
- joined_at: timestamp (default: now())
- unique constraint on (team_id, user_id)

team_invitations:
- id: uuid (primary key)
- team_id: uuid (foreign key to teams.id, not null)
- invited_email: text (not null)
- invited_by: uuid (not null)
- role: text (not null) - team role granted on acceptance
- status: text (not null, default: 'pending') - values: pending, accepted, declined, expired
- message: text (nullable)
- created_at: timestamp (default: now())
- expires_at: timestamp (not null)

team_activities:
- id: uuid (primary key)
- team_id: uuid (foreign key to teams.id, not null)
- user_id: uuid (not null) - actor
- action: text (not null) - e.g. team_created, member_invited, role_updated
- resource: text (not null) - team, invitation, membership
- details: text (nullable)
- created_at: timestamp (default: now())
"""
