"""Vehicle image ingestion, normalization and serving for the dealership site."""

__version__ = "0.1.0"
