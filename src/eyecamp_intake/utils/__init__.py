"""Utilities module.

This module provides the exception hierarchy, error categorization and
shared file helpers.
"""
