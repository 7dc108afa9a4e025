"""Integrations with the key-value store and the identity authority."""
