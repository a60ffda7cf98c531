"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc, to_local, from_client_local, parse_iso
