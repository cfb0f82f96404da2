"""HTTP layer for the boards API."""
