"""Filtering, pipeline assembly and publishing."""
