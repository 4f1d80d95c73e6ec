"""Identity persistence."""
