"""GigaChad GRC environment initializer."""

__version__ = "0.1.0"
