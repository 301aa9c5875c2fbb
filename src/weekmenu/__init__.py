"""Household meal planning: weekly menus and shopping lists."""

__version__ = "0.1.0"
