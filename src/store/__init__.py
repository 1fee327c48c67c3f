"""Batch persistence layer.

This module serializes parse results into atomic batch directories.
It powers the SDK client and the CLI ingest command.
"""
