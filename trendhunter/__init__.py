"""Trend Hunter: food-trend signal fusion, scoring and discovery."""

__version__ = "0.3.0"
