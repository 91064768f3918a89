"""Test utilities for Video Builder tests."""
