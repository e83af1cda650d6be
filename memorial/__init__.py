"""Memorial Console: content administration and spreadsheet data exchange."""

__version__ = "0.4.0"
