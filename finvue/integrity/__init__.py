"""Referential integrity package."""

from finvue.integrity.manager import ReferentialIntegrityManager

__all__ = ["ReferentialIntegrityManager"]
