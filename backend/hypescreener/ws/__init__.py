"""Notification hub."""
