"""BuildVersioning: gapless, unique build numbers issued under a store-wide lock."""

__version__ = "1.0.0"
