"""
Initial catalog contents.

Seeded records have no owner, so what can be done with them afterwards is
decided by the ``LEGACY_OWNER_POLICY`` of the ownership guard.
"""

import logging

from . import domain
from .services import catalog

logger = logging.getLogger(__name__)

CUSTOMERS = [
    domain.Customer(customer_id=1, name='Evan Hearne', allergies=[],
                    favourite_icecreams=[1, 2, 3]),
    domain.Customer(customer_id=2, name='Alice Smith', allergies=['peanuts'],
                    favourite_icecreams=[2, 4]),
]

STOCK = [
    domain.Stock(ice_cream_id=1, name='Vanilla', allergens=[], price=5.5,
                 in_stock=True),
    domain.Stock(ice_cream_id=2, name='Chocolate', allergens=['milk'],
                 price=6.0, in_stock=True),
]


def populate(replace: bool = True) -> int:
    """
    Write the initial customers and stock to the catalogs.

    Parameters
    ----------
    replace : bool
        Overwrite unowned records with the same key. Records that a user has
        created are always left alone, as are all existing records if this
        is not set.

    Returns
    -------
    int
        Number of records written.

    """
    written = 0
    for target, records in ((catalog.customers(), CUSTOMERS),
                            (catalog.stock(), STOCK)):
        for record in records:
            try:
                target.create(record, None, replace=replace)
            except catalog.AlreadyExists:
                logger.info('Keeping existing %s', record)
                continue
            written += 1
    logger.info('Seeding complete: %i records', written)
    return written
