"""Property listings service for a real-estate agency website."""

__version__ = "0.1.0"
