"""Post statistics synchronization."""
