"""Quota counter adapters (shared atomic fetch-and-add integer)."""
