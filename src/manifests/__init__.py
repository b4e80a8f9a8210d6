"""
Manifest Module

Per-sailing passenger manifest for the port authority, with CSV and PDF
exports.
"""

from .router import router
from .manifest_service import ManifestService

__all__ = ["router", "ManifestService"]
