"""Data model, errors, points resolver and bracket math."""
