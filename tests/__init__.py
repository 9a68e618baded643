"""
Test suite for raw2imd.

This package contains:
- Unit tests for the geometry engine and the IMD writer
- Integration tests for complete file and command-line conversions
- In-memory sources and sinks for testing without files
"""
