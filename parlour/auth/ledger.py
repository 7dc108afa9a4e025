"""
The revocation ledger.

Keeps one :class:`.CredentialRecord` per issued credential so that a sign-out
can be honored by every later request, even though the identity authority's
tokens stay cryptographically valid until they expire.

Issuance and revocation know the *access* token; enforcement only ever sees
the *ID* token presented as a bearer credential. Both tokens are therefore
written into the same record at sign-in: the access token is its primary key
and the ID token is a secondary index, so both paths read and write a single
piece of state.

Records are never deleted. A record moves from issued (``revoked=False``) to
revoked (``revoked=True``) and never back.
"""

import logging
from datetime import datetime
from typing import Any, Optional

import dateutil.parser
from pytz import UTC

from .. import domain
from ..context import get_application_config, get_application_global
from ..services import datastore
from .exceptions import LedgerUnavailable

logger = logging.getLogger(__name__)

KEY_FIELD = 'access_token'
INDEX_FIELD = 'id_token'


def _to_item(record: domain.CredentialRecord) -> dict:
    return {
        'access_token': record.access_token,
        'id_token': record.id_token,
        'revoked': record.revoked,
        'issued_at': record.issued_at.isoformat()
        if record.issued_at else None,
        'revoked_at': record.revoked_at.isoformat()
        if record.revoked_at else None,
    }


def _from_item(item: dict) -> domain.CredentialRecord:
    issued_at = item.get('issued_at')
    revoked_at = item.get('revoked_at')
    return domain.CredentialRecord(
        access_token=item['access_token'],
        id_token=item['id_token'],
        revoked=bool(item.get('revoked', False)),
        issued_at=dateutil.parser.parse(issued_at) if issued_at else None,
        revoked_at=dateutil.parser.parse(revoked_at) if revoked_at else None
    )


class RevocationLedger(object):
    """Records issued credentials and whether they have been revoked."""

    def __init__(self, table: datastore.Table) -> None:
        self.table = table

    @classmethod
    def for_connection(cls, r: Any, name: str) -> 'RevocationLedger':
        """Create a ledger on a Redis connection, in the table ``name``."""
        return cls(datastore.Table(r, name, key_fields=(KEY_FIELD,),
                                   indexes=(INDEX_FIELD,)))

    def record_issuance(self, access_token: str, id_token: str) -> None:
        """
        Record a freshly issued credential as active.

        Recording the same access token again replaces the earlier record.

        Raises
        ------
        :class:`.LedgerUnavailable`

        """
        record = domain.CredentialRecord(
            access_token=access_token,
            id_token=id_token,
            revoked=False,
            issued_at=datetime.now(tz=UTC)
        )
        try:
            self.table.put(_to_item(record))
        except datastore.StoreUnavailable as e:
            raise LedgerUnavailable(f'Could not record issuance: {e}') from e

    def get(self, access_token: str) -> Optional[domain.CredentialRecord]:
        """Get the record for an access token, if there is one."""
        try:
            item = self.table.get({KEY_FIELD: access_token})
        except datastore.StoreUnavailable as e:
            raise LedgerUnavailable(f'Could not read ledger: {e}') from e
        return _from_item(item) if item else None

    def revoke(self, access_token: str) -> domain.RevokeResult:
        """
        Mark the credential issued with ``access_token`` as revoked.

        An unknown access token is left alone; the caller still sees a
        successful (``NOT_FOUND``) result, since a missing ledger entry must
        never stand in the way of a sign-out. Revoking twice is harmless.

        Raises
        ------
        :class:`.LedgerUnavailable`

        """
        record = self.get(access_token)
        if record is None:
            logger.debug('No ledger entry to revoke')
            return domain.RevokeResult.NOT_FOUND
        if record.revoked:
            return domain.RevokeResult.REVOKED
        revoked = record._replace(revoked=True,
                                  revoked_at=datetime.now(tz=UTC))
        try:
            self.table.put(_to_item(revoked))
        except datastore.StoreUnavailable as e:
            raise LedgerUnavailable(f'Could not revoke: {e}') from e
        return domain.RevokeResult.REVOKED

    def status(self, id_token: str) -> domain.RevocationStatus:
        """
        Look up the revocation state of a credential by its ID token.

        Returns :attr:`.RevocationStatus.UNKNOWN` rather than raising when
        the ledger cannot be read; what to make of that is up to the caller.
        A credential the ledger has never seen is ``ACTIVE``.
        """
        try:
            items = self.table.query(INDEX_FIELD, id_token)
        except datastore.StoreUnavailable as e:
            logger.warning('Ledger lookup failed: %s', e)
            return domain.RevocationStatus.UNKNOWN
        if any(item.get('revoked') for item in items):
            return domain.RevocationStatus.REVOKED
        return domain.RevocationStatus.ACTIVE

    def is_revoked(self, id_token: str) -> bool:
        """
        Determine whether a credential has been revoked.

        Fails open: if the ledger cannot be read, the credential is treated
        as not revoked.
        """
        return self.status(id_token) is domain.RevocationStatus.REVOKED


def init_app(app: object = None) -> None:
    """Set default configuration parameters for an application instance."""
    config = get_application_config(app)
    config.setdefault('LEDGER_TABLE', 'credentials')


def current_ledger() -> RevocationLedger:
    """Get/create the :class:`.RevocationLedger` for this context."""
    g = get_application_global()
    if g is not None and 'ledger' in g:
        return g.ledger     # type: ignore
    config = get_application_config()
    ledger = RevocationLedger.for_connection(
        datastore.current_connection(),
        config.get('LEDGER_TABLE', 'credentials')
    )
    if g is not None:
        g.ledger = ledger
    return ledger

