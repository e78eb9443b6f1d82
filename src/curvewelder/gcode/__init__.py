"""G-code parsing and formatting."""
