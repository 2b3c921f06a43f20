"""Configuration, logging and decoding utilities."""
