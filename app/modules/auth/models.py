# Supabase Auth
# This module uses Supabase's built-in authentication system
# Only table of its own: user_profiles. Supabase Auth handles:
# - User registration and login (auth.users table)
# - JWT token generation and validation
# - Session cookies set by the frontend (sb-access-token)

"""
Supabase Auth provides:
- auth.get_user(jwt=...) - Get current user from an access token

The backend never issues tokens itself. The frontend signs users in against
Supabase directly and forwards the access token either as
`Authorization: Bearer <token>` or in the session cookie named by
settings.auth_cookie_name.
"""

"""
Expected Supabase table structure (display profile, one row per auth user):

user_profiles:
- id: uuid (primary key, foreign key to auth.users.id)
- email: text (not null, unique)
- name: text (not null) - 2 to 100 characters
- avatar_url: text (nullable) - http(s) URL
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
"""
