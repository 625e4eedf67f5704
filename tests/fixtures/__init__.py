"""
Test fixtures.

This module provides:
- make_entity: builds a valid registration with overridable fields
- ACME: the field set of the reference registration
"""

from .registrations import ACME, make_entity

__all__ = ["ACME", "make_entity"]
