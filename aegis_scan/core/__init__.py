"""Core engine components: configuration, logging, exceptions and scanning."""
