"""Outbound HTTP: the retrying provider client and its retry policy."""
