"""
Rooms App - Shared Rooms and Presence

Rooms, their members (payer / non-payer) and the per-day presence ledger
that prorates water costs. Rooms and memberships are created through the
Django admin; the API exposes presence check-in and the payer flag.
"""
