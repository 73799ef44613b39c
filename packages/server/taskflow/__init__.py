"""Task dependency and timeline cascade service."""
