"""
Database Module

This module provides database configuration and models for the Axon backend.
"""

from axon.database.base import Base, ModelBase, metadata, JSONType

__all__ = ['Base', 'ModelBase', 'metadata', 'JSONType']
