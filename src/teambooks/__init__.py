"""Teambooks: multi-tenant team and book budgeting core."""

from __future__ import annotations

from .config import BaseConfig, DevConfig
from .infra.database import bootstrap_database

__all__ = ["BaseConfig", "DevConfig", "bootstrap_database"]
