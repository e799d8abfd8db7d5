"""Reconstruction session API."""

from atlas_recon.session.reconstructor import Mutator, ReconstructionSession

__all__ = ["Mutator", "ReconstructionSession"]
