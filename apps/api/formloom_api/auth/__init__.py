"""Authentication and role enforcement."""
