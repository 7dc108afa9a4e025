"""
Customer and stock catalogs.

Every record carries ``owner_subject``, written once when the record is
created. Nothing in this module can change it afterwards: updates drop the
field before they reach the store, a new record is claimed with an atomic
insert, and a replacing create refuses records that already have an owner.
"""

import logging
from typing import Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar

from .. import domain
from ..context import get_application_config, get_application_global
from . import datastore

logger = logging.getLogger(__name__)

OWNER_FIELD = 'owner_subject'

Record = TypeVar('Record', domain.Customer, domain.Stock)


class AlreadyExists(RuntimeError):
    """A record with the same key is already in the catalog."""


class Catalog(Generic[Record]):
    """A table of records of one type."""

    record_type: Type[Record]
    key_fields: Tuple[str, ...] = ()

    def __init__(self, table: datastore.Table) -> None:
        self.table = table

    @classmethod
    def for_connection(cls, r: Any, name: str) -> 'Catalog':
        """Create a catalog on a Redis connection, in the table ``name``."""
        return cls(datastore.Table(r, name, key_fields=cls.key_fields))

    def _from_item(self, item: Dict[str, Any]) -> Record:
        fields = {name: item[name] for name in self.record_type._fields
                  if name in item}
        return self.record_type(**fields)     # type: ignore

    def get(self, **key: Any) -> Optional[Record]:
        """Get a record by its key, or ``None``."""
        item = self.table.get(key)
        return self._from_item(item) if item else None

    def list(self) -> List[Record]:
        """Get every record in the catalog."""
        return [self._from_item(item) for item in self.table.scan()]

    def create(self, record: Record, owner_subject: Optional[str],
               replace: bool = False) -> Record:
        """
        Add a record owned by ``owner_subject``.

        With ``replace``, an existing record is overwritten only if it has no
        owner; an owned record is never replaced, so its owner cannot change.

        Raises
        ------
        :class:`AlreadyExists`
            A record with that key exists and ``replace`` is not set, or it
            exists and is owned.

        """
        record = record._replace(owner_subject=owner_subject)   # type: ignore
        key = {field: getattr(record, field) for field in self.key_fields}
        if not replace:
            if not self.table.insert(dict(record._asdict())):
                raise AlreadyExists(f'{self.table.name} {key} already exists')
            return record

        existing = self.table.get(key)
        if existing is not None and existing.get(OWNER_FIELD) is not None:
            raise AlreadyExists(f'{self.table.name} {key} is owned')
        self.table.put(dict(record._asdict()))
        return record

    def update(self, fields: Dict[str, Any], **key: Any) -> Record:
        """
        Change the mutable fields of an existing record.

        The owner and the key fields are never changed.

        Raises
        ------
        :class:`.datastore.NoSuchItem`

        """
        changes = {name: value for name, value in fields.items()
                   if name in self.record_type._fields
                   and name != OWNER_FIELD}
        return self._from_item(self.table.update(key, changes))

    def delete(self, **key: Any) -> None:
        """Remove a record."""
        self.table.delete(key)


class CustomerCatalog(Catalog[domain.Customer]):
    """Customers, keyed by ``customer_id`` and ``name``."""

    record_type = domain.Customer
    key_fields = ('customer_id', 'name')


class StockCatalog(Catalog[domain.Stock]):
    """Ice creams in stock, keyed by ``ice_cream_id``."""

    record_type = domain.Stock
    key_fields = ('ice_cream_id',)


def init_app(app: object = None) -> None:
    """Set default configuration parameters for an application instance."""
    config = get_application_config(app)
    config.setdefault('CUSTOMER_TABLE', 'customer')
    config.setdefault('STOCK_TABLE', 'stock')


def _current(name: str, catalog_class: Type[Catalog],
             config_key: str, default: str) -> Any:
    g = get_application_global()
    if g is not None and name in g:
        return getattr(g, name)
    config = get_application_config()
    catalog = catalog_class.for_connection(datastore.current_connection(),
                                           config.get(config_key, default))
    if g is not None:
        setattr(g, name, catalog)
    return catalog


def customers() -> CustomerCatalog:
    """Get/create the :class:`.CustomerCatalog` for this context."""
    catalog: CustomerCatalog = _current('customers', CustomerCatalog,
                                        'CUSTOMER_TABLE', 'customer')
    return catalog


def stock() -> StockCatalog:
    """Get/create the :class:`.StockCatalog` for this context."""
    catalog: StockCatalog = _current('stock', StockCatalog,
                                     'STOCK_TABLE', 'stock')
    return catalog
