"""Points, position tracking, curve fitting and the welding pipeline."""
