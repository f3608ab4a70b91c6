"""overmind: per-tick task scheduler for a colony of worker agents."""

__version__ = "0.1.0"
