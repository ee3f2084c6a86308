"""TES3 record stream codec."""
