"""
Input linkage of a remittance item.

An item either points at an existing Input or is still waiting for one.
Callers branch on the variant type instead of checking a nullable FK:

    linkage = item.linkage
    if isinstance(linkage, Linked):
        stock.register_movement(linkage.input_id, ...)
    else:
        item.pending_quantity += delta
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Linked:
    """Item resolved to an Input."""
    input_id: int


@dataclass(frozen=True)
class Unlinked:
    """Item without an Input yet: received quantity is deferred."""


UNLINKED = Unlinked()


Linkage = Linked | Unlinked
