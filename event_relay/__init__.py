"""Deliver domain events between services over an at-least-once queue."""
