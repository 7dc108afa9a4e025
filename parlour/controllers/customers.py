"""
Controllers for the customer catalog.

Customers are addressed by ``CustomerID`` together with ``Name``. Reads are
public; the owner recorded on a customer never appears in a response.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from werkzeug.exceptions import BadRequest, Conflict, InternalServerError, \
    NotFound

from .. import domain, status
from ..services import catalog
from ..services.datastore import NoSuchItem, StoreUnavailable
from .util import as_int, as_list

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]


def to_public(customer: domain.Customer) -> Dict[str, Any]:
    """Render a customer with its wire field names, without its owner."""
    return {
        'CustomerID': customer.customer_id,
        'Name': customer.name,
        'Allergies': list(customer.allergies),
        'FavouriteIcecreams': list(customer.favourite_icecreams)
    }


def _get(customer_id: int, name: str) -> domain.Customer:
    try:
        customer = catalog.customers().get(customer_id=customer_id,
                                           name=name)
    except StoreUnavailable as e:
        raise InternalServerError('Could not retrieve customer') from e
    if customer is None:
        raise NotFound('No such customer')
    return customer


def customer_owner(customer_id: int, name: str) -> Optional[str]:
    """
    Get the owner of a customer, for use as a guard's ``owner_of``.

    Raises
    ------
    :class:`werkzeug.exceptions.NotFound`
        There is no such customer.

    """
    return _get(customer_id, name).owner_subject


def get_customer(customer_id: int, name: str) -> ResponseData:
    """Get a single customer."""
    return to_public(_get(customer_id, name)), status.HTTP_200_OK, {}


def list_customers() -> ResponseData:
    """Get every customer."""
    try:
        customers = catalog.customers().list()
    except StoreUnavailable as e:
        raise InternalServerError('Could not retrieve customers') from e
    return {'customers': [to_public(c) for c in customers]}, \
        status.HTTP_200_OK, {}


def add_customer(payload: Optional[Dict[str, Any]],
                 owner_subject: str) -> ResponseData:
    """
    Add a customer owned by ``owner_subject``.

    Parameters
    ----------
    payload : dict
        ``CustomerID`` and ``Name`` are required; ``Allergies`` and
        ``FavouriteIcecreams`` default to empty lists.
    owner_subject : str
        Decoded subject of the credential that authorized the request.

    Returns
    -------
    dict
    int
    dict

    """
    if not payload or not isinstance(payload, dict):
        raise BadRequest('Request body is required')
    if payload.get('CustomerID') in (None, '') or not payload.get('Name'):
        raise BadRequest('CustomerID and Name are required')
    try:
        customer = domain.Customer(
            customer_id=as_int(payload['CustomerID'], 'CustomerID'),
            name=str(payload['Name']),
            allergies=as_list(payload.get('Allergies'), 'Allergies'),
            favourite_icecreams=[
                as_int(value, 'FavouriteIcecreams') for value
                in as_list(payload.get('FavouriteIcecreams'),
                           'FavouriteIcecreams')
            ]
        )
    except ValueError as e:
        raise BadRequest(str(e)) from e

    try:
        customer = catalog.customers().create(customer, owner_subject)
    except catalog.AlreadyExists as e:
        raise Conflict('Customer already exists') from e
    except StoreUnavailable as e:
        raise InternalServerError('Could not add customer') from e
    logger.debug('Added customer %s', customer.customer_id)
    return {'message': 'Customer added successfully',
            'data': to_public(customer)}, status.HTTP_201_CREATED, {}


def update_customer(customer_id: int, name: str,
                    payload: Optional[Dict[str, Any]]) -> ResponseData:
    """Change the allergies and favourites of a customer."""
    if not payload or not isinstance(payload, dict):
        raise BadRequest('Request body is required')
    fields: Dict[str, Any] = {}
    try:
        if 'Allergies' in payload:
            fields['allergies'] = as_list(payload['Allergies'], 'Allergies')
        if 'FavouriteIcecreams' in payload:
            fields['favourite_icecreams'] = [
                as_int(value, 'FavouriteIcecreams') for value
                in as_list(payload['FavouriteIcecreams'],
                           'FavouriteIcecreams')
            ]
    except ValueError as e:
        raise BadRequest(str(e)) from e

    try:
        customer = catalog.customers().update(fields,
                                              customer_id=customer_id,
                                              name=name)
    except NoSuchItem as e:
        raise NotFound('No such customer') from e
    except StoreUnavailable as e:
        raise InternalServerError('Could not update customer') from e
    return {'message': 'Customer updated successfully',
            'data': to_public(customer)}, status.HTTP_200_OK, {}


def delete_customer(customer_id: int, name: str) -> ResponseData:
    """Remove a customer."""
    try:
        catalog.customers().delete(customer_id=customer_id, name=name)
    except StoreUnavailable as e:
        raise InternalServerError('Could not delete customer') from e
    return {'message': 'Customer deleted successfully'}, \
        status.HTTP_200_OK, {}
