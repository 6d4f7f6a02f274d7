"""Core pipeline logic for verity."""
