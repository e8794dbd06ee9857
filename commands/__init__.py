"""click command groups for the practice CLI."""
