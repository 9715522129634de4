"""Adapters implementing the core ports for probes, notifications and status."""
