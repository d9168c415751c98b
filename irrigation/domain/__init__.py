"""Domain model for the irrigation bridge (readings, profiles, device state)."""
