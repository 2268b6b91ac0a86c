# Supabase tables: business_plans, plan_shares
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Section content is stored by the editor, not by this service.

"""
Expected Supabase table structure:

business_plans:
- id: uuid (primary key)
- plan_name: text (not null)
- owner_id: uuid (foreign key to user_profiles.id, not null)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

plan_shares:
- id: uuid (primary key)
- plan_id: uuid (foreign key to business_plans.id, not null)
- shared_with_email: text (not null)
- shared_by: uuid (not null)
- created_at: timestamp (default: now())
- unique constraint on (plan_id, shared_with_email)
"""
