"""Heirlock: dead-man's-switch custody for Algorand."""
