"""Reusable patterns for the collaboration core.

Each module is a self-contained building block: explicit operation
results, the task status state machine, in-memory repositories, and
domain configuration.
"""
