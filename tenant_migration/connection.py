"""
Cassandra connection used for both sides of the migration.

The pipeline only needs three primitives from a connection, all awaitable:

  execute(query, params)               -> list of row dicts
  stream(query, params)                -> async iterator of row dicts, page by page
  execute_batch(table, template, rows) -> one LOGGED batch of a prepared insert

The driver runs its I/O on its own threads and reports results through
callbacks; _PageChannel hands those results over to the asyncio loop.
"""

import asyncio
from typing import Any, AsyncIterator, Dict, List, Sequence

from cassandra import ConsistencyLevel, InvalidRequest, OperationTimedOut
from cassandra.cluster import Cluster, NoHostAvailable
from cassandra.policies import ConstantReconnectionPolicy, RoundRobinPolicy
from cassandra.query import BatchStatement, BatchType, SimpleStatement, dict_factory

from tenant_migration.config import FETCH_SIZE
from tenant_migration.errors import ConnectivityError, MigrationError, SchemaMissingError

CONNECTIVITY_ERRORS = (NoHostAvailable, OperationTimedOut)


def translate_error(error: Exception, table: str = None) -> Exception:
    """Map a driver exception onto the migration's error taxonomy."""
    if isinstance(error, MigrationError):
        return error
    if isinstance(error, CONNECTIVITY_ERRORS):
        return ConnectivityError(str(error))
    if isinstance(error, InvalidRequest) and 'unconfigured' in str(error).lower():
        return SchemaMissingError(table or '?', error)
    return error


class _PageChannel:
    """Delivers each page of a ResponseFuture to the event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop, response_future):
        self._loop = loop
        self._pages = asyncio.Queue()
        # Callbacks stay registered across start_fetching_next_page()
        response_future.add_callbacks(callback=self._on_page, errback=self._on_error)

    def _on_page(self, rows):
        self._loop.call_soon_threadsafe(self._pages.put_nowait, (rows, None))

    def _on_error(self, error):
        self._loop.call_soon_threadsafe(self._pages.put_nowait, (None, error))

    async def next_page(self) -> List[Dict[str, Any]]:
        rows, error = await self._pages.get()
        if error is not None:
            raise error
        return list(rows or [])


class CassandraConnection:
    """One cluster session bound to one keyspace."""

    def __init__(self, cluster, session, config: Dict[str, Any], fetch_size: int = FETCH_SIZE):
        self.cluster = cluster
        self.session = session
        self.config = config
        self.fetch_size = fetch_size
        self.host = config['host']
        self.keyspace = config['keyspace']
        self._prepared = {}

    async def prepare(self, query: str, table: str = None):
        """Prepare a statement once and reuse it for the rest of the run."""
        if query not in self._prepared:
            loop = asyncio.get_running_loop()
            try:
                self._prepared[query] = await loop.run_in_executor(None, self.session.prepare, query)
            except Exception as e:
                raise translate_error(e, table) from e
        return self._prepared[query]

    async def _statement(self, query: str, parameters: Sequence = None, table: str = None):
        if parameters is None:
            return SimpleStatement(query, fetch_size=self.fetch_size)
        prepared = await self.prepare(query, table)
        bound = prepared.bind(parameters)
        bound.fetch_size = self.fetch_size
        return bound

    async def stream(self, query: str, parameters: Sequence = None,
                     table: str = None) -> AsyncIterator[Dict[str, Any]]:
        """
        Yield rows one at a time, fetching the next page only when the
        current one has been consumed.
        """
        statement = await self._statement(query, parameters, table)
        try:
            response_future = self.session.execute_async(statement)
            channel = _PageChannel(asyncio.get_running_loop(), response_future)
            while True:
                page = await channel.next_page()
                for row in page:
                    yield row
                if not response_future.has_more_pages:
                    break
                response_future.start_fetching_next_page()
        except Exception as e:
            raise translate_error(e, table) from e

    async def execute(self, query: str, parameters: Sequence = None,
                      table: str = None) -> List[Dict[str, Any]]:
        """Run a statement and collect every page of its result."""
        return [row async for row in self.stream(query, parameters, table)]

    async def execute_batch(self, table: str, insert_template: str,
                            parameters_list: List[Sequence]):
        """Apply all the bound inserts as a single LOGGED batch."""
        prepared = await self.prepare(insert_template, table)
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        for parameters in parameters_list:
            batch.add(prepared, parameters)

        try:
            response_future = self.session.execute_async(batch)
            await _PageChannel(asyncio.get_running_loop(), response_future).next_page()
        except Exception as e:
            raise translate_error(e, table) from e

    def close(self):
        self.cluster.shutdown()


def keyspace_exists(session, keyspace: str) -> bool:
    """Check if a keyspace exists."""
    rows = session.execute(
        "SELECT keyspace_name FROM system_schema.keyspaces WHERE keyspace_name = %s",
        (keyspace,)
    )
    return bool(list(rows))


def create_keyspace(session, config: Dict[str, Any]):
    """Create the keyspace with the configured replication."""
    print(f"    📦 Creating missing keyspace '{config['keyspace']}'...")
    session.execute(
        f"CREATE KEYSPACE IF NOT EXISTS \"{config['keyspace']}\" "
        f"WITH REPLICATION = {{ 'class': '{config['strategy_class']}', "
        f"'replication_factor': {config['replication']} }}"
    )
    print(f"    ✓ Keyspace '{config['keyspace']}' created on {config['host']}")


def open_connection(config: Dict[str, Any], fetch_size: int = FETCH_SIZE,
                    create_missing_keyspace: bool = True) -> CassandraConnection:
    """Connect to a cluster and bind the session to the configured keyspace."""
    print(f"  ✓ Initialising connection to {config['host']}/{config['keyspace']}")

    timeout_seconds = config['timeout'] / 1000.0
    cluster = Cluster(
        contact_points=[config['host']],
        port=config['port'],
        load_balancing_policy=RoundRobinPolicy(),
        reconnection_policy=ConstantReconnectionPolicy(timeout_seconds),
        protocol_version=3,
        connect_timeout=timeout_seconds,
        control_connection_timeout=timeout_seconds,
    )

    try:
        session = cluster.connect()
        session.row_factory = dict_factory
        session.default_timeout = config['read_timeout'] / 1000.0
        session.default_consistency_level = ConsistencyLevel.QUORUM

        if not keyspace_exists(session, config['keyspace']):
            if not create_missing_keyspace:
                raise MigrationError(f"Keyspace '{config['keyspace']}' does not exist on {config['host']}")
            create_keyspace(session, config)

        session.set_keyspace(config['keyspace'])
    except CONNECTIVITY_ERRORS as e:
        cluster.shutdown()
        raise ConnectivityError(f"Cannot connect to {config['host']}: {e}") from e
    except Exception:
        cluster.shutdown()
        raise

    return CassandraConnection(cluster, session, config, fetch_size)
