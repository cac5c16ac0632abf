# Supabase Auth + table: profiles
# Facilitators are the only authenticated users. Participants never touch auth.users;
# see app/modules/participants for their anonymous, device-scoped sessions.

"""
Supabase Auth provides:
- auth.sign_up() - Register new facilitators
- auth.sign_in_with_password() - Authenticate facilitators
- auth.get_user() - Resolve a facilitator from a JWT token
- auth.sign_out() - Logout

Expected Supabase table structure (profiles):
- id: text (primary key, the identity provider's user id)
- email: text (not null)
- first_name: text (nullable)
- last_name: text (nullable)
- plan: text (nullable) - free | pro | curago; written by the billing webhook
- subscription_status: text (not null, default: 'inactive')
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())
"""
