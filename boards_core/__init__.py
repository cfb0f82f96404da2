"""Core file attachment services for the boards API."""
