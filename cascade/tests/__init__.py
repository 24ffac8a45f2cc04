"""Cascade tests."""
