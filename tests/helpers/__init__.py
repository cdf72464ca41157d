"""Test doubles shared across the test modules."""
