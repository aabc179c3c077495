# lucia_toolkit/utils/__init__.py

"""
Utility module initialization file.

This module exposes the random identifier helpers used for sessions,
users and OAuth state values.
"""

from .security import generate_random_token, generate_state, generate_id, constant_time_equals

__all__ = ["generate_random_token", "generate_state", "generate_id", "constant_time_equals"]
