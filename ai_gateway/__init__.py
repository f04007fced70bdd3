"""AI provider gateway."""
