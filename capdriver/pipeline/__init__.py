"""Pipeline data contracts and console output."""
