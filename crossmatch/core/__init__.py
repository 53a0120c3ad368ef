"""Core infrastructure components."""
