"""Core infrastructure: config, logging, events, persistence and generation."""
