"""Request controllers; each returns response data, status, and headers."""
