"""Modguard: a Discord moderation bot with spam, banned term, and AI rule checks."""
