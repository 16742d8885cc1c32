"""Tournament format engines."""
