"""Camps module.

This module provides camp validation and the JSON camp registry.
"""

from eyecamp_intake.camps.registry import CampRegistry, generate_camp_id, validate_camp_fields

__all__ = ["CampRegistry", "generate_camp_id", "validate_camp_fields"]
