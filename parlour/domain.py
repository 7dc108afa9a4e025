"""Defines the core data structures for the parlour service."""

from datetime import datetime
from enum import Enum
from typing import List, NamedTuple, Optional


class Operation(Enum):
    """An operation on a protected resource."""

    CREATE = 'create'
    UPDATE = 'update'
    DELETE = 'delete'


class RevocationStatus(Enum):
    """Revocation state of a credential, as far as the ledger can tell."""

    ACTIVE = 'active'
    REVOKED = 'revoked'
    UNKNOWN = 'unknown'
    """The ledger could not be read."""


class RevokeResult(Enum):
    """Outcome of a revocation request against the ledger."""

    REVOKED = 'revoked'
    NOT_FOUND = 'not_found'


class TokenSet(NamedTuple):
    """Credentials issued by the identity authority at sign-in."""

    access_token: str
    id_token: str
    refresh_token: Optional[str] = None


class CredentialRecord(NamedTuple):
    """
    One issued access credential in the revocation ledger.

    The record is keyed by ``access_token`` and indexed by ``id_token``; both
    tokens come from the same sign-in, so the sign-out path (which knows the
    access token) and the enforcement path (which sees the ID token) always
    land on the same record.
    """

    access_token: str
    id_token: str
    revoked: bool = False
    issued_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None


class AuthDecision(NamedTuple):
    """A positive authorization decision."""

    operation: Operation
    subject: str
    """Decoded subject of the presented credential."""


class Customer(NamedTuple):
    """A customer in the customer catalog."""

    customer_id: int
    name: str
    allergies: List[str] = []
    favourite_icecreams: List[int] = []
    owner_subject: Optional[str] = None
    """Subject that created the record. Set once, never exposed."""


class Stock(NamedTuple):
    """An ice cream in the stock catalog."""

    ice_cream_id: int
    name: str
    allergens: List[str] = []
    price: float = 0.0
    in_stock: bool = False
    owner_subject: Optional[str] = None
    """Subject that created the record. Set once, never exposed."""
