"""Ad-platform performance report import and normalisation."""

__version__ = "0.1.0"
