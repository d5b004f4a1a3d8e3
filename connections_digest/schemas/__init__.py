"""
schemas/ — Pydantic models for validated job configuration.
"""
