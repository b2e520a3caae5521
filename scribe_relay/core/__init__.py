"""Core data model and rendering — no network, no configuration."""
