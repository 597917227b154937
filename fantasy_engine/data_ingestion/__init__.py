"""Adapters that turn real-world session data into engine inputs."""
