"""Shared helpers: logging decorator and validation."""
