"""Graph and logbook synchronization."""
