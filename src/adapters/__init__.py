"""Adapters that bind the core ports to signal-cli and durable storage."""
