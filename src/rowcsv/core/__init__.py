"""Conversion engine, data source client and ambient services."""
