"""HTTP responder for single sprites."""

from atlas_recon.ui.app import create_app

__all__ = ["create_app"]
