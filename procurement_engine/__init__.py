"""Vendor risk scoring, supplier ranking and procurement forecasting engine."""

__version__ = "1.0.0"
