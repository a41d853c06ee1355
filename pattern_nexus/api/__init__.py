"""HTTP API for Pattern Nexus."""
