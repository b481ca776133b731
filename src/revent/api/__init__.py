"""HTTP API for revent."""
