"""Domain entities and storage ports."""
