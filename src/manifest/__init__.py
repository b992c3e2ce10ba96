"""Readers for the files that carry version requests."""
