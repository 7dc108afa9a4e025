"""Controllers for the stock catalog."""

import logging
from typing import Any, Dict, Optional, Tuple

from werkzeug.exceptions import BadRequest, Conflict, InternalServerError, \
    NotFound

from .. import domain, status
from ..services import catalog
from ..services.datastore import NoSuchItem, StoreUnavailable
from .util import as_bool, as_float, as_int, as_list

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]


def to_public(item: domain.Stock) -> Dict[str, Any]:
    """Render a stock item with its wire field names, without its owner."""
    return {
        'IceCreamID': item.ice_cream_id,
        'Name': item.name,
        'Allergens': list(item.allergens),
        'Price': item.price,
        'IsStock': item.in_stock
    }


def _get(ice_cream_id: int) -> domain.Stock:
    try:
        item = catalog.stock().get(ice_cream_id=ice_cream_id)
    except StoreUnavailable as e:
        raise InternalServerError('Could not retrieve item') from e
    if item is None:
        raise NotFound('No such item')
    return item


def stock_owner(ice_cream_id: int) -> Optional[str]:
    """Get the owner of a stock item; raises ``NotFound`` if there is none."""
    return _get(ice_cream_id).owner_subject


def _fields(payload: Dict[str, Any]) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    if 'Name' in payload:
        if not payload['Name']:
            raise ValueError('Name must not be empty')
        fields['name'] = str(payload['Name'])
    if 'Allergens' in payload:
        fields['allergens'] = as_list(payload['Allergens'], 'Allergens')
    if 'Price' in payload:
        fields['price'] = as_float(payload['Price'], 'Price')
    if 'IsStock' in payload:
        fields['in_stock'] = as_bool(payload['IsStock'])
    return fields


def get_stock(ice_cream_id: int) -> ResponseData:
    """Get a single stock item."""
    return to_public(_get(ice_cream_id)), status.HTTP_200_OK, {}


def list_stock() -> ResponseData:
    """Get every stock item."""
    try:
        items = catalog.stock().list()
    except StoreUnavailable as e:
        raise InternalServerError('Could not retrieve items') from e
    return {'stock': [to_public(item) for item in items]}, \
        status.HTTP_200_OK, {}


def add_stock(payload: Optional[Dict[str, Any]],
              owner_subject: str) -> ResponseData:
    """
    Add a stock item owned by ``owner_subject``.

    ``IceCreamID`` and ``Name`` are required. ``Price`` defaults to zero and
    ``IsStock`` to false.
    """
    if not payload or not isinstance(payload, dict):
        raise BadRequest('Request body is required')
    if payload.get('IceCreamID') in (None, '') or not payload.get('Name'):
        raise BadRequest('IceCreamID and Name are required')
    try:
        fields = _fields(payload)
        item = domain.Stock(
            ice_cream_id=as_int(payload['IceCreamID'], 'IceCreamID'),
            **fields
        )
    except ValueError as e:
        raise BadRequest(str(e)) from e

    try:
        item = catalog.stock().create(item, owner_subject)
    except catalog.AlreadyExists as e:
        raise Conflict('Item already exists') from e
    except StoreUnavailable as e:
        raise InternalServerError('Could not add item') from e
    logger.debug('Added stock item %s', item.ice_cream_id)
    return {'message': 'Item added successfully', 'data': to_public(item)}, \
        status.HTTP_201_CREATED, {}


def update_stock(ice_cream_id: int,
                 payload: Optional[Dict[str, Any]]) -> ResponseData:
    """Change the name, allergens, price or availability of an item."""
    if not payload or not isinstance(payload, dict):
        raise BadRequest('Request body is required')
    try:
        fields = _fields(payload)
    except ValueError as e:
        raise BadRequest(str(e)) from e

    try:
        item = catalog.stock().update(fields, ice_cream_id=ice_cream_id)
    except NoSuchItem as e:
        raise NotFound('No such item') from e
    except StoreUnavailable as e:
        raise InternalServerError('Could not update item') from e
    return {'message': 'Item updated successfully', 'data': to_public(item)}, \
        status.HTTP_200_OK, {}


def delete_stock(ice_cream_id: int) -> ResponseData:
    """Remove a stock item."""
    try:
        catalog.stock().delete(ice_cream_id=ice_cream_id)
    except StoreUnavailable as e:
        raise InternalServerError('Could not delete item') from e
    return {'message': 'Item deleted successfully'}, status.HTTP_200_OK, {}
