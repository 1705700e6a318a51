"""Pure helpers shared across the kernel."""
