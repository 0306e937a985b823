"""Tournament structure generation and seeding."""

__version__ = '0.1.0'
