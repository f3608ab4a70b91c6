"""Configuration, logging and structured events."""
