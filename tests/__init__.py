"""End-to-end tests for the parlour service."""
