"""Business operations for the orders service."""
