"""Core configuration, logging, errors and scheduling."""
