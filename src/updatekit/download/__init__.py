"""Concurrent range-based downloading."""
