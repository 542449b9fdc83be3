"""Retention domain: what the reaper reads and deletes."""
