"""Cross-exchange perpetual funding and spread opportunity scanner."""

__version__ = "0.1.0"
