"""Auth session for THub clients.

The AuthController runs the login/register/logout/verify flows against the
REST API and keeps the session user in the shared query cache; SessionStore
publishes that user to the rest of the application; NotificationCenter carries
the user-facing messages every mutation produces.
"""
