"""Pydantic request/response models for the Harbor API."""
