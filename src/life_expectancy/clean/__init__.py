"""Clean package running the end-to-end cleaning pass.

This module wires ingestion, cleaning, quality metrics and export into a
single run for the world life expectancy table.
"""
