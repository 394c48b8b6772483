"""Data types shared across the moderation pipeline."""
