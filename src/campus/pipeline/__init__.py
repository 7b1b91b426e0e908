"""Pipeline stages for the campus request service."""
