"""Domain modules for Satellite Config resources."""
