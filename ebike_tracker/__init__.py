"""E-bike mileage tracker: Flask API over a per-user mileage document."""

__version__ = "1.0.0"
