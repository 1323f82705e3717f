"""Pydantic models for cookies, extraction results and progress events."""
