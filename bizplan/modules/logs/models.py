# Supabase tables: system_logs, error_logs, access_logs
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

system_logs:
- id: uuid (primary key)
- level: text (not null) - values: DEBUG, INFO, WARN, ERROR, CRITICAL
- category: text (not null) - values: USER, SYSTEM, API, DATABASE, SECURITY, PERFORMANCE, BUSINESS
- message: text (not null)
- details: text (nullable)
- user_id: uuid (nullable)
- user_email: text (nullable)
- ip_address: text (nullable)
- request_id: text (nullable)
- created_at: timestamp (default: now())

error_logs:
- id: uuid (primary key)
- error: text (not null)
- error_type: text (not null) - values: API_ERROR, CLIENT_ERROR, VALIDATION_ERROR, PERMISSION_ERROR, SYSTEM_ERROR
- severity: text (not null) - values: LOW, MEDIUM, HIGH, CRITICAL
- url: text (not null)
- method: text (nullable)
- user_id: uuid (nullable)
- user_email: text (nullable)
- stack: text (nullable)
- resolved: boolean (default: false)
- resolved_by: text (nullable) - email of the administrator
- resolved_at: timestamp (nullable)
- created_at: timestamp (default: now())

access_logs:
- id: uuid (primary key)
- user_id: uuid (nullable)
- user_email: text (nullable)
- user_name: text (nullable)
- action: text (not null) - the permission checked, e.g. can_manage_users
- resource: text (not null) - method and path
- success: boolean (not null)
- details: text (nullable)
- ip_address: text (nullable)
- user_agent: text (nullable)
- created_at: timestamp (default: now())
"""
