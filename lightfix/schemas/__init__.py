"""Packaged JSON schema and default configuration template."""
