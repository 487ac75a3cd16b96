"""Regrid parcel data adapter."""

from __future__ import annotations

from .client import RegridLookupClient
from .translator import normalize_parcel, translate_search_hit

__all__ = ["RegridLookupClient", "normalize_parcel", "translate_search_hit"]
