"""File attachment flows: access policy, metadata store, upload/download."""
