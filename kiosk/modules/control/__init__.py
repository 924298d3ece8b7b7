"""Consumer-side gesture control."""
