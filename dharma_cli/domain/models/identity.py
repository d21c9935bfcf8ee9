"""
Domain Models - Identity
Unlocked signing identity held by the active borrower session.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class SigningIdentity:
    """
    Address plus the unlocked key that signs for it.

    `recovery_phrase` is only populated on a freshly generated identity so
    the session can show it once; unlocked or recovered identities carry None.
    """
    address: str
    private_key: bytes = field(repr=False)
    recovery_phrase: Optional[str] = field(default=None, repr=False)

    def without_recovery_phrase(self) -> "SigningIdentity":
        return SigningIdentity(address=self.address, private_key=self.private_key)
