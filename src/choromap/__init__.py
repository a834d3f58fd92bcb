"""Choropleth map of dominant demographic categories with hover detail."""

__version__ = "0.1.0"
