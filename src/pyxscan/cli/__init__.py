"""Command-line interface for pyxscan."""
