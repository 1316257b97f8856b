"""turntimer: a turn timer for tabletop games."""

__version__ = "0.1.0"
