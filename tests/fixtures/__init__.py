"""Shared test helpers for devstrap tests."""
