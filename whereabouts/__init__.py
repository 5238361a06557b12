"""Whereabouts: OpenPGP-attested, group-scoped encrypted location sharing."""

__version__ = "0.1.0"
