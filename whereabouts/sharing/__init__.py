"""Group-scoped authorization and the encrypted location ledger."""
from whereabouts.sharing.groups import GroupGate
from whereabouts.sharing.ledger import LocationLedger

__all__ = ["GroupGate", "LocationLedger"]
