"""
Sign-in and sign-out.

The identity authority issues and invalidates credentials; the revocation
ledger remembers which credentials were explicitly signed out so that the
ownership guard can refuse them. Ledger writes here are bookkeeping: a
failure is logged and never turns a successful sign-in or sign-out into a
failed one.
"""

import logging
from typing import Optional, Protocol

from .. import domain
from ..services import identity
from . import ledger as ledger_module
from .exceptions import ExternalAuthorityError, LedgerUnavailable

logger = logging.getLogger(__name__)


class IdentityAuthority(Protocol):
    """What the lifecycle needs from the identity authority."""

    def issue_tokens(self, username: str, password: str) -> domain.TokenSet:
        ...

    def global_invalidate(self, access_token: str) -> None:
        ...

    def register(self, username: str, password: str, email: str) -> None:
        ...

    def confirm(self, username: str, code: str) -> None:
        ...


class SessionLifecycle(object):
    """Orchestrates the identity authority and the revocation ledger."""

    def __init__(self, authority: IdentityAuthority,
                 ledger: ledger_module.RevocationLedger) -> None:
        self.authority = authority
        self.ledger = ledger

    def register(self, username: str, password: str, email: str) -> None:
        """Register a new user with the authority."""
        self.authority.register(username, password, email)

    def confirm(self, username: str, code: str) -> None:
        """Confirm a pending registration."""
        self.authority.confirm(username, code)

    def sign_in(self, username: str, password: str) -> domain.TokenSet:
        """
        Get credentials from the authority and record them in the ledger.

        Raises
        ------
        :class:`.ExternalAuthorityError`
            The authority refused to issue credentials.

        """
        token_set = self.authority.issue_tokens(username, password)
        try:
            self.ledger.record_issuance(token_set.access_token,
                                        token_set.id_token)
        except LedgerUnavailable as e:
            # The credentials are valid regardless; they just cannot be
            # revoked through the ledger later.
            logger.error('Could not record issuance for %s: %s', username, e)
        return token_set

    def sign_out(self, access_token: str) -> None:
        """
        Invalidate a credential at the authority and revoke it in the ledger.

        The ledger is updated even when the authority call fails, so that it
        reflects the caller's intent.

        Raises
        ------
        :class:`.ExternalAuthorityError`
            The authority call failed. The ledger has still been updated.

        """
        failure: Optional[ExternalAuthorityError] = None
        try:
            self.authority.global_invalidate(access_token)
        except ExternalAuthorityError as e:
            logger.debug('Authority sign-out failed: %s', e)
            failure = e

        try:
            result = self.ledger.revoke(access_token)
            logger.debug('Ledger revocation: %s', result.value)
        except LedgerUnavailable as e:
            logger.error('Could not revoke credential in ledger: %s', e)

        if failure is not None:
            raise failure


def current_lifecycle() -> SessionLifecycle:
    """Create a :class:`.SessionLifecycle` for this context."""
    return SessionLifecycle(identity.current_authority(),
                            ledger_module.current_ledger())
