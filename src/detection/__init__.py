"""Deployment mode detection."""
