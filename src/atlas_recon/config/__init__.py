"""Configuration loading."""

from atlas_recon.config.schema import Config, load_config

__all__ = ["Config", "load_config"]
