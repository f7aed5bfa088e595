"""Shared infrastructure: exceptions, logging and timezone utilities."""
