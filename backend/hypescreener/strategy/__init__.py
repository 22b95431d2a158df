"""Scoring heuristics."""
