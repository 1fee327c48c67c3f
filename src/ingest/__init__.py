"""Export ingestion pipeline.

This module reads dating-platform exports and parses them into the
unified entity model ready for the store layer.
"""
