"""Domain layer: identifiers shared by every engine component."""
