"""Normalize light sources in TES3/OpenMW plugins."""

__version__ = "0.1.0"
