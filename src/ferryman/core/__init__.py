"""Core components: configuration, logging, security and migration building blocks."""
