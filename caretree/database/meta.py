"""
Meta functionality for the database.
"""

from .group import Group

ALL_TABLES = (Group,)
