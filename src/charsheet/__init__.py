"""charsheet - derived statistics and rest recovery for tabletop character sheets."""

__version__ = "0.1.0"
