"""
vasudha-access.

Account admission and session authorization for a role-based web
application backed by Supabase: registration with an approval gate,
login, and a per-page guard.
"""

__version__ = "0.1.0"
