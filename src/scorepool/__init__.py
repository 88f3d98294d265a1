"""scorepool - pooled three-way match predictions with escrowed settlement."""

__version__ = "0.1.0"
