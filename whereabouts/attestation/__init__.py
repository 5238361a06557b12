"""Challenge-response attestation protocol.

Registration, challenge issuance, signed-challenge verification with
bearer-secret minting, and bearer-secret session resolution.
"""
from whereabouts.attestation.challenge import ChallengeIssuer
from whereabouts.attestation.registry import IdentityRegistry
from whereabouts.attestation.resolver import ResolvedIdentity, SessionResolver
from whereabouts.attestation.verifier import AttestationVerifier, MintedSession

__all__ = [
    "AttestationVerifier",
    "ChallengeIssuer",
    "IdentityRegistry",
    "MintedSession",
    "ResolvedIdentity",
    "SessionResolver",
]
