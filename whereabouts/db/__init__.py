"""Relational persistence for identities, attestations, groups and locations."""
