# -*- coding: utf-8 -*-
"""
thawpool.adapters.access
========================

Minimal **Ownable** gate: a single privileged owner identity.

- read the current owner (`owner`)
- check that a caller is the owner (`require_owner`)
- transfer ownership to a new identity (`transfer_ownership`)

`require_role` is the same check against an arbitrary identity; the engine
uses it for the timelock role, whose holder is stored in configuration.
"""
from __future__ import annotations

from ..errors import AuthorizationError, ValidationError

__all__ = ["OwnerGate", "require_role"]


def require_role(caller: str, holder: str, role: str) -> None:
    """Raise AuthorizationError unless `caller` is `holder`."""
    if not holder or caller != holder:
        raise AuthorizationError(f"caller is not {role}", caller=str(caller), role=role)


class OwnerGate:
    def __init__(self, owner: str) -> None:
        if not isinstance(owner, str) or not owner:
            raise ValidationError("owner must be a non-empty identity")
        self._owner = owner

    @property
    def owner(self) -> str:
        return self._owner

    def is_owner(self, caller: str) -> bool:
        return caller == self._owner

    def require_owner(self, caller: str) -> None:
        require_role(caller, self._owner, "owner")

    def snapshot(self) -> str:
        return self._owner

    def restore(self, owner: str) -> None:
        self._owner = owner

    def transfer_ownership(self, caller: str, new_owner: str) -> str:
        """
        Owner-only: hand the role to `new_owner` (must be non-empty).
        Returns the previous owner.
        """
        self.require_owner(caller)
        if not isinstance(new_owner, str) or not new_owner:
            raise ValidationError("new owner must be a non-empty identity")
        previous, self._owner = self._owner, new_owner
        return previous
