"""predrank - top-K prediction market ranking with membership history."""

__version__ = "0.1.0"
