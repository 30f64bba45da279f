"""
DLX3 Decoder

Decodes DLX3 passenger-counting recorder files: a flat stream of
checksummed, tagged blocks (counts, door configuration, diagnostics,
waypoints, fleet telemetry, ...).

Package layout:
- analysis: pure decoding (Functional Core)
- data:     file access and pandas views (Imperative Shell)
- utils:    logging and timezone helpers
- cli:      ``dlx3`` command-line entry point
"""

__version__ = "0.1.0"
