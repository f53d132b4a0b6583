"""EdgeRunner: Kelly criterion bet sizing."""

__version__ = "0.1.0"
