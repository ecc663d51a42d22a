"""Storage key names.

These are the exact keys the web portal keeps in browser localStorage, so a
record written by one client is readable by the other when they share a store.
"""

REMEMBERED_USER_KEY = "thub_remembered_user"

DISMISSED_ALERTS_KEY = "dismissedAlerts"
