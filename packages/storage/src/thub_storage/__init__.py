"""Client-side persistence for the THub portal.

Small best-effort records that survive between sessions: the remembered login
email and the list of dismissed alert banners.
"""
