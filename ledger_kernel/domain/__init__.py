"""Pure domain helpers: time, money rounding, entry state."""
