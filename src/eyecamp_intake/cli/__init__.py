"""CLI module.

This module provides the click command group and its subcommands.
"""
