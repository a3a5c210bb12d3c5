"""Request and response schemas for the match service."""
