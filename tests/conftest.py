"""Shared fixtures: an in-memory stand-in for a Cassandra connection."""

import asyncio
import re

import pytest

from tenant_migration.key_registry import MigrationContext

SELECT_RE = re.compile(
    r'^SELECT \* FROM "(?P<table>[^"]+)"'
    r'(?: WHERE "(?P<column>[^"]+)" (?P<op>=|IN) \?)?'
    r'(?: ALLOW FILTERING)?$'
)
INSERT_RE = re.compile(r'^INSERT INTO "(?P<table>[^"]+)" \((?P<columns>.*?)\) VALUES')
CREATE_TABLE_RE = re.compile(r'^CREATE TABLE IF NOT EXISTS "(?P<table>[^"]+)"')


class FakeConnection:
    """
    Understands the handful of statements the migration issues:
    full scans, single-column = / IN selects, CREATE statements, the
    system_schema table listing and batched inserts. Inserts are upserts
    on the whole row.
    """

    def __init__(self, tables=None, host='fake-host', keyspace='fake_ks', fail_batches=None):
        self.host = host
        self.keyspace = keyspace
        self.tables = {name: [dict(row) for row in rows] for name, rows in (tables or {}).items()}
        self.queries = []
        self.batches = []
        self.ddl = []
        self.fail_batches = fail_batches or {}

    def queries_for(self, table):
        return [(query, params) for query, params in self.queries if f'"{table}"' in query]

    async def stream(self, query, parameters=None, table=None):
        self.queries.append((query, parameters))

        if query.startswith('CREATE'):
            self.ddl.append(query)
            match = CREATE_TABLE_RE.match(query)
            if match:
                self.tables.setdefault(match.group('table'), [])
            return

        if 'system_schema.tables' in query:
            for name in sorted(self.tables):
                yield {'table_name': name}
            return

        match = SELECT_RE.match(query)
        assert match, f"FakeConnection cannot run: {query}"

        rows = self.tables.get(match.group('table'), [])
        column = match.group('column')
        for row in list(rows):
            if column is not None:
                if match.group('op') == '=' and row.get(column) != parameters[0]:
                    continue
                if match.group('op') == 'IN' and row.get(column) not in parameters[0]:
                    continue
            # Let other tasks run between rows, like a real paged read
            await asyncio.sleep(0)
            yield dict(row)

    async def execute(self, query, parameters=None, table=None):
        return [row async for row in self.stream(query, parameters, table)]

    async def execute_batch(self, table, insert_template, parameters_list):
        self.batches.append((table, insert_template, [list(p) for p in parameters_list]))
        await asyncio.sleep(0)

        if table in self.fail_batches:
            raise self.fail_batches[table]

        match = INSERT_RE.match(insert_template)
        columns = re.findall(r'"([^"]+)"', match.group('columns'))
        rows = self.tables.setdefault(match.group('table'), [])
        for parameters in parameters_list:
            row = dict(zip(columns, parameters))
            if row not in rows:
                rows.append(row)

    def close(self):
        pass


def tenant_source_tables():
    """Two tenants, 'cam' and 'oxford', sharing every table."""
    return {
        'Tenant': [
            {'alias': 'cam', 'active': True, 'displayName': 'Cambridge', 'host': 'cam.oae.example'},
            {'alias': 'oxford', 'active': True, 'displayName': 'Oxford', 'host': 'ox.oae.example'},
        ],
        'Config': [
            {'tenantAlias': 'cam', 'configKey': 'oae-core/site/name', 'value': 'Cambridge'},
            {'tenantAlias': 'oxford', 'configKey': 'oae-core/site/name', 'value': 'Oxford'},
        ],
        'Principals': [
            {'principalId': 'u:cam:alice', 'tenantAlias': 'cam', 'displayName': 'Alice', 'email': 'alice@cam.example'},
            {'principalId': 'u:cam:bob', 'tenantAlias': 'cam', 'displayName': 'Bob', 'email': 'bob@cam.example'},
            {'principalId': 'g:cam:team', 'tenantAlias': 'cam', 'displayName': 'Cam Team'},
            {'principalId': 'u:oxford:carol', 'tenantAlias': 'oxford', 'displayName': 'Carol'},
        ],
        'PrincipalsByEmail': [
            {'email': 'alice@cam.example', 'principalId': 'u:cam:alice'},
            {'email': 'carol@ox.example', 'principalId': 'u:oxford:carol'},
        ],
        'AuthzMembers': [
            {'resourceId': 'g:cam:team', 'memberId': 'u:cam:alice', 'role': 'manager'},
            {'resourceId': 'g:cam:team', 'memberId': 'u:oxford:carol', 'role': 'member'},
            {'resourceId': 'g:oxford:club', 'memberId': 'u:oxford:carol', 'role': 'manager'},
        ],
        'AuthzRoles': [
            {'principalId': 'u:cam:alice', 'resourceId': 'c:cam:doc', 'role': 'manager'},
            {'principalId': 'u:cam:alice', 'resourceId': 'd:cam:talk', 'role': 'manager'},
            {'principalId': 'u:oxford:carol', 'resourceId': 'c:oxford:notes', 'role': 'manager'},
        ],
        'AuthenticationUserLoginId': [
            {'userId': 'u:cam:alice', 'loginId': 'local:cam:alice', 'value': '1'},
            {'userId': 'u:oxford:carol', 'loginId': 'local:oxford:carol', 'value': '1'},
        ],
        'AuthenticationLoginId': [
            {'loginId': 'local:cam:alice', 'password': 'hash', 'userId': 'u:cam:alice'},
            {'loginId': 'local:oxford:carol', 'password': 'hash', 'userId': 'u:oxford:carol'},
        ],
        'OAuthClientsByUser': [
            {'userId': 'u:cam:bob', 'clientId': 'client-1', 'value': '1'},
        ],
        'OAuthClient': [
            {'id': 'client-1', 'displayName': 'Bob app', 'secret': 's', 'userId': 'u:cam:bob'},
            {'id': 'client-2', 'displayName': 'Carol app', 'secret': 's', 'userId': 'u:oxford:carol'},
        ],
        'Folders': [
            {'id': 'f:cam:stuff', 'groupId': 'g:cam:stuff-members', 'tenantAlias': 'cam'},
            {'id': 'f:oxford:misc', 'groupId': 'g:oxford:misc-members', 'tenantAlias': 'oxford'},
        ],
        'FoldersGroupId': [
            {'groupId': 'g:cam:stuff-members', 'folderId': 'f:cam:stuff'},
            {'groupId': 'g:oxford:misc-members', 'folderId': 'f:oxford:misc'},
        ],
        'Content': [
            {'contentId': 'c:cam:doc', 'tenantAlias': 'cam', 'resourceSubType': 'collabdoc',
             'etherpadGroupId': 'g.abc', 'etherpadPadId': 'g.abc$pad1'},
            {'contentId': 'c:oxford:notes', 'tenantAlias': 'oxford', 'resourceSubType': 'file'},
        ],
        'RevisionByContent': [
            {'contentId': 'c:cam:doc', 'created': '1500000000000', 'revisionId': 'rev:cam:1'},
            {'contentId': 'c:oxford:notes', 'created': '1500000000001', 'revisionId': 'rev:oxford:1'},
        ],
        'Revisions': [
            {'revisionId': 'rev:cam:1', 'contentId': 'c:cam:doc'},
            {'revisionId': 'rev:oxford:1', 'contentId': 'c:oxford:notes'},
        ],
        'Discussions': [
            {'id': 'd:cam:talk', 'tenantAlias': 'cam', 'displayName': 'Talk'},
            {'id': 'd:oxford:chat', 'tenantAlias': 'oxford', 'displayName': 'Chat'},
        ],
        'Messages': [
            {'id': 'd:cam:talk#1500000000000:m1', 'body': 'hi', 'threadKey': '1500000000000|'},
            {'id': 'd:oxford:chat#1500000000000:m2', 'body': 'hello', 'threadKey': '1500000000000|'},
        ],
        'MessageBoxMessages': [
            {'messageBoxId': 'd:cam:talk', 'threadKey': '1500000000000|', 'value': '1'},
            {'messageBoxId': 'd:cam:talk', 'threadKey': None, 'value': '1'},
            {'messageBoxId': 'c:cam:doc', 'threadKey': '1500000000002|', 'value': '1'},
            {'messageBoxId': 'd:oxford:chat', 'threadKey': '1500000000000|', 'value': '1'},
        ],
        'AuthzInvitations': [
            {'resourceId': 'c:cam:doc', 'email': 'dave@elsewhere.example', 'inviterUserId': 'u:cam:alice', 'role': 'viewer'},
        ],
        'AuthzInvitationsResourceIdByEmail': [
            {'email': 'dave@elsewhere.example', 'resourceId': 'c:cam:doc'},
        ],
        'AuthzInvitationsTokenByEmail': [
            {'email': 'dave@elsewhere.example', 'token': 'tok-1'},
        ],
        'AuthzInvitationsEmailByToken': [
            {'token': 'tok-1', 'email': 'dave@elsewhere.example'},
            {'token': 'tok-2', 'email': 'erin@elsewhere.example'},
        ],
        'LibraryIndex': [
            {'bucketKey': 'content:library:cam:u:cam:alice', 'rankedResourceId': '1#c:cam:doc', 'value': '1'},
            {'bucketKey': 'content:library:oxford:u:oxford:carol', 'rankedResourceId': '1#c:oxford:notes', 'value': '1'},
        ],
        'Etherpad': [
            {'key': 'mapper2group:c:cam:doc', 'data': '"g.abc"'},
            {'key': 'mapper2group:c:oxford:notes', 'data': '"g.xyz"'},
            {'key': 'globalAuthor:a.alice', 'data': '{"name":"Alice"}'},
            {'key': 'globalAuthor:a.carol', 'data': '{"name":"Carol"}'},
            {'key': 'mapper2author:u:cam:alice', 'data': '"a.alice"'},
            {'key': 'mapper2author:u:oxford:carol', 'data': '"a.carol"'},
            {'key': 'pad:g.abc$pad1', 'data': '{}'},
            {'key': 'pad:g.abc$pad1:revs:0', 'data': '{}'},
            {'key': 'pad:g.xyz$pad9', 'data': '{}'},
            {'key': 'group:g.abc', 'data': '{}'},
            {'key': 'group:g.xyz', 'data': '{}'},
        ],
    }


@pytest.fixture
def source():
    return FakeConnection(tenant_source_tables(), host='shared-host', keyspace='oae')


@pytest.fixture
def target():
    return FakeConnection(host='tenant-host', keyspace='oae_cam')


@pytest.fixture
def context():
    return MigrationContext('cam')
