"""
Keyed storage on top of Redis.

A :class:`Table` holds JSON items addressed by one or more primary key
fields, and can maintain secondary indexes on other fields so that an item
can also be found by, e.g., a token that is not its primary key. Each item
lives under its own key; membership and index entries are Redis sets that
are written in the same pipeline as the item itself.

::

    <table>:item:<pk>             JSON item
    <table>:keys                  set of every <pk>
    <table>:index:<field>:<value> set of <pk> whose item has field == value

"""

import json
import logging
from functools import wraps
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import fakeredis
import redis
from flask import current_app, has_app_context

from ..context import get_application_config

logger = logging.getLogger(__name__)

Item = Dict[str, Any]

EXTENSION_KEY = 'parlour.redis'


class StoreUnavailable(RuntimeError):
    """The backing key-value store could not be reached."""


class NoSuchItem(RuntimeError):
    """No item exists under the requested key."""


def _store_errors(func: Callable) -> Callable:
    """Translate Redis failures into :class:`StoreUnavailable`."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except redis.exceptions.RedisError as e:
            logger.error('Store operation %s failed: %s', func.__name__, e)
            raise StoreUnavailable(f'Store unavailable: {e}') from e
    return wrapper


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode('utf-8')
    return str(value)


class Table(object):
    """
    A named collection of items in Redis.

    Parameters
    ----------
    r : :class:`redis.StrictRedis`
        The connection is thread safe; the table just carries configuration.
    name : str
        Prefix for every key that belongs to this table.
    key_fields : tuple
        Fields that together identify an item.
    indexes : tuple
        Fields for which a secondary index is maintained.

    """

    def __init__(self, r: redis.StrictRedis, name: str,
                 key_fields: Tuple[str, ...],
                 indexes: Tuple[str, ...] = ()) -> None:
        if not key_fields:
            raise ValueError('A table needs at least one key field')
        self.r = r
        self.name = name
        self.key_fields = tuple(key_fields)
        self.indexes = tuple(indexes)

    def _pk(self, key: Item) -> str:
        try:
            return json.dumps([key[field] for field in self.key_fields])
        except KeyError as e:
            raise ValueError(f'Missing key field {e} for {self.name}') from e

    def _item_key(self, pk: str) -> str:
        return f'{self.name}:item:{pk}'

    def _keys_key(self) -> str:
        return f'{self.name}:keys'

    def _index_key(self, field: str, value: Any) -> str:
        return f'{self.name}:index:{field}:{json.dumps(value)}'

    def _load(self, pk: str) -> Optional[Item]:
        raw = self.r.get(self._item_key(pk))
        if raw is None:
            return None
        item: Item = json.loads(raw)
        return item

    def _load_many(self, pks: Iterable[str]) -> List[Item]:
        ordered = sorted(pks)
        if not ordered:
            return []
        raws = self.r.mget([self._item_key(pk) for pk in ordered])
        return [json.loads(raw) for raw in raws if raw is not None]

    @_store_errors
    def get(self, key: Item) -> Optional[Item]:
        """Get the item stored under ``key``, or ``None``."""
        return self._load(self._pk(key))

    @_store_errors
    def put(self, item: Item) -> None:
        """
        Store ``item``, replacing anything already under its key.

        Index entries that pointed at the replaced item are moved.
        """
        pk = self._pk(item)
        previous = self._load(pk)
        pipe = self.r.pipeline()
        pipe.set(self._item_key(pk), json.dumps(item))
        pipe.sadd(self._keys_key(), pk)
        for field in self.indexes:
            old_value = previous.get(field) if previous else None
            new_value = item.get(field)
            if old_value is not None and old_value != new_value:
                pipe.srem(self._index_key(field, old_value), pk)
            if new_value is not None:
                pipe.sadd(self._index_key(field, new_value), pk)
        pipe.execute()

    @_store_errors
    def insert(self, item: Item) -> bool:
        """
        Store ``item`` only if nothing is stored under its key yet.

        The item is claimed with ``SET NX``, so of two concurrent inserts for
        the same key exactly one succeeds.

        Returns
        -------
        bool
            ``False`` if an item already existed, in which case nothing was
            written.

        """
        pk = self._pk(item)
        if not self.r.set(self._item_key(pk), json.dumps(item), nx=True):
            return False
        pipe = self.r.pipeline()
        pipe.sadd(self._keys_key(), pk)
        for field in self.indexes:
            if item.get(field) is not None:
                pipe.sadd(self._index_key(field, item[field]), pk)
        pipe.execute()
        return True

    def update(self, key: Item, fields: Item) -> Item:
        """
        Merge ``fields`` into an existing item and return the new item.

        Key fields cannot be changed this way.

        Raises
        ------
        :class:`NoSuchItem`
            There is nothing to update under ``key``.

        """
        current = self.get(key)
        if current is None:
            raise NoSuchItem(f'No item in {self.name} for {self._pk(key)}')
        merged = dict(current)
        merged.update({k: v for k, v in fields.items()
                       if k not in self.key_fields})
        self.put(merged)
        return merged

    @_store_errors
    def delete(self, key: Item) -> None:
        """Delete the item under ``key``. Deleting nothing is not an error."""
        pk = self._pk(key)
        previous = self._load(pk)
        if previous is None:
            return
        pipe = self.r.pipeline()
        pipe.delete(self._item_key(pk))
        pipe.srem(self._keys_key(), pk)
        for field in self.indexes:
            if previous.get(field) is not None:
                pipe.srem(self._index_key(field, previous[field]), pk)
        pipe.execute()

    @_store_errors
    def scan(self) -> List[Item]:
        """Get every item in the table, ordered by key."""
        pks = [_text(pk) for pk in self.r.smembers(self._keys_key())]
        return self._load_many(pks)

    @_store_errors
    def query(self, index: str, value: Any) -> List[Item]:
        """Get the items whose indexed ``index`` field equals ``value``."""
        if index not in self.indexes:
            raise ValueError(f'{self.name} has no index on {index}')
        members = self.r.smembers(self._index_key(index, value))
        return self._load_many([_text(pk) for pk in members])


def init_app(app: object = None) -> None:
    """Set default configuration parameters for an application instance."""
    config = get_application_config(app)
    config.setdefault('REDIS_HOST', 'localhost')
    config.setdefault('REDIS_PORT', '6379')
    config.setdefault('REDIS_DATABASE', '0')
    config.setdefault('REDIS_FAKE', False)


def _is_set(value: Any) -> bool:
    if isinstance(value, str):
        return value.lower() in ('1', 'true', 'yes')
    return bool(value)


def new_connection(app: object = None) -> redis.StrictRedis:
    """Open a new connection to Redis using the application config."""
    config = get_application_config(app)
    if _is_set(config.get('REDIS_FAKE', False)):
        logger.debug('Using an in-process fake Redis')
        return fakeredis.FakeStrictRedis(server=fakeredis.FakeServer())
    host = config.get('REDIS_HOST', 'localhost')
    port = int(config.get('REDIS_PORT', '6379'))
    db = int(config.get('REDIS_DATABASE', '0'))
    logger.debug('New Redis connection at %s, port %s', host, port)
    return redis.StrictRedis(host=host, port=port, db=db)


def current_connection() -> redis.StrictRedis:
    """
    Get the Redis connection for the current application.

    The connection is created on first use and kept on the application, so
    that every request shares it (and, with ``REDIS_FAKE``, the same data).
    """
    if not has_app_context():
        return new_connection()
    app = current_app._get_current_object()    # type: ignore
    if EXTENSION_KEY not in app.extensions:
        app.extensions[EXTENSION_KEY] = new_connection(app)
    connection: redis.StrictRedis = app.extensions[EXTENSION_KEY]
    return connection
