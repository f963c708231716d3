"""Receive log: incoming correspondence that tasks are dispatched from."""
