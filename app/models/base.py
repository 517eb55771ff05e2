"""Shared table metadata."""

from sqlalchemy import MetaData

# Single metadata so foreign keys resolve across tables
metadata = MetaData()
