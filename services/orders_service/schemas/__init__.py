"""Pydantic schemas for the orders service."""
