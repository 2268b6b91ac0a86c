# Supabase tables: user_profiles, auth.users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

user_profiles:
- id: uuid (primary key, references auth.users.id)
- email: text (unique, not null) - synced from auth.users
- full_name: text (nullable)
- company: text (nullable)
- department: text (nullable)
- role: text (not null, default: 'regular') - values: administrator, regular
- is_active: boolean (not null, default: true)
- last_login_at: timestamp (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Note: Passwords and tokens live in auth.users, managed by Supabase Auth.
The system role is read from this table on every request.
"""
