"""ReelShelf - personal movie collection library."""

__version__ = "0.3.0"
