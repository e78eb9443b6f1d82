"""Shape and welder configuration."""
