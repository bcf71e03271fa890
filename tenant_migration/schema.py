"""
Target keyspace schema.

Every copied table gets a CREATE TABLE IF NOT EXISTS, so the bootstrap can
run before every migration. Tables are created concurrently; indexes are
created afterwards because they need their table to exist.
"""

import asyncio
from typing import List

CREATE_TABLE_STATEMENTS = [
    'CREATE TABLE IF NOT EXISTS "Tenant" ("alias" text PRIMARY KEY, "active" boolean, "countryCode" text, '
    '"displayName" text, "emailDomains" text, "host" text)',

    'CREATE TABLE IF NOT EXISTS "Config" ("tenantAlias" text, "configKey" text, "value" text, '
    'PRIMARY KEY ("tenantAlias", "configKey"))',

    'CREATE TABLE IF NOT EXISTS "Principals" ("principalId" text PRIMARY KEY, "acceptedTC" text, '
    '"admin:global" text, "admin:tenant" text, "created" timestamp, "createdBy" text, "deleted" timestamp, '
    '"description" text, "displayName" text, "email" text, "emailPreference" text, "joinable" text, '
    '"largePictureUri" text, "lastModified" text, "locale" text, "mediumPictureUri" text, '
    '"notificationsLastRead" text, "notificationsUnread" text, "publicAlias" text, "smallPictureUri" text, '
    '"tenantAlias" text, "visibility" text)',

    'CREATE TABLE IF NOT EXISTS "PrincipalsByEmail" ("email" text, "principalId" text, '
    'PRIMARY KEY ("email", "principalId"))',

    'CREATE TABLE IF NOT EXISTS "AuthzMembers" ("resourceId" text, "memberId" text, "role" text, '
    'PRIMARY KEY ("resourceId", "memberId"))',

    'CREATE TABLE IF NOT EXISTS "AuthzRoles" ("principalId" text, "resourceId" text, "role" text, '
    'PRIMARY KEY ("principalId", "resourceId"))',

    'CREATE TABLE IF NOT EXISTS "UsersGroupVisits" ("userId" text, "groupId" text, "latestVisit" text, '
    'PRIMARY KEY ("userId", "groupId"))',

    'CREATE TABLE IF NOT EXISTS "FollowingUsersFollowers" ("userId" text, "followerId" text, "value" text, '
    'PRIMARY KEY ("userId", "followerId"))',

    'CREATE TABLE IF NOT EXISTS "FollowingUsersFollowing" ("userId" text, "followingId" text, "value" text, '
    'PRIMARY KEY ("userId", "followingId"))',

    'CREATE TABLE IF NOT EXISTS "AuthenticationUserLoginId" ("userId" text, "loginId" text, "value" text, '
    'PRIMARY KEY ("userId", "loginId"))',

    'CREATE TABLE IF NOT EXISTS "AuthenticationLoginId" ("loginId" text PRIMARY KEY, "password" text, '
    '"secret" text, "userId" text)',

    'CREATE TABLE IF NOT EXISTS "OAuthClient" ("id" text PRIMARY KEY, "displayName" text, "secret" text, '
    '"userId" text)',

    'CREATE TABLE IF NOT EXISTS "OAuthClientsByUser" ("userId" text, "clientId" text, "value" text, '
    'PRIMARY KEY ("userId", "clientId"))',

    'CREATE TABLE IF NOT EXISTS "Folders" ("id" text PRIMARY KEY, "created" text, "createdBy" text, '
    '"description" text, "displayName" text, "groupId" text, "lastModified" text, "previews" text, '
    '"tenantAlias" text, "visibility" text)',

    'CREATE TABLE IF NOT EXISTS "FoldersGroupId" ("groupId" text PRIMARY KEY, "folderId" text)',

    'CREATE TABLE IF NOT EXISTS "Content" ("contentId" text PRIMARY KEY, "created" text, "createdBy" text, '
    '"description" text, "displayName" text, "etherpadGroupId" text, "etherpadPadId" text, "filename" text, '
    '"largeUri" text, "lastModified" text, "latestRevisionId" text, "link" text, "mediumUri" text, '
    '"mime" text, "previews" text, "resourceSubType" text, "size" text, "smallUri" text, "status" text, '
    '"tenantAlias" text, "thumbnailUri" text, "uri" text, "visibility" text, "wideUri" text)',

    'CREATE TABLE IF NOT EXISTS "RevisionByContent" ("contentId" text, "created" text, "revisionId" text, '
    'PRIMARY KEY ("contentId", "created"))',

    'CREATE TABLE IF NOT EXISTS "Revisions" ("revisionId" text PRIMARY KEY, "contentId" text, "created" text, '
    '"createdBy" text, "etherpadHtml" text, "filename" text, "largeUri" text, "mediumUri" text, "mime" text, '
    '"previews" text, "previewsId" text, "size" text, "smallUri" text, "status" text, "thumbnailUri" text, '
    '"uri" text, "wideUri" text)',

    'CREATE TABLE IF NOT EXISTS "Discussions" ("id" text PRIMARY KEY, "created" text, "createdBy" text, '
    '"description" text, "displayName" text, "lastModified" text, "tenantAlias" text, "visibility" text)',

    'CREATE TABLE IF NOT EXISTS "Messages" ("id" text PRIMARY KEY, "body" text, "createdBy" text, '
    '"deleted" text, "threadKey" text)',

    'CREATE TABLE IF NOT EXISTS "MessageBoxMessages" ("messageBoxId" text, "threadKey" text, "value" text, '
    'PRIMARY KEY ("messageBoxId", "threadKey"))',

    'CREATE TABLE IF NOT EXISTS "MessageBoxMessagesDeleted" ("messageBoxId" text, "createdTimestamp" text, '
    '"value" text, PRIMARY KEY ("messageBoxId", "createdTimestamp"))',

    'CREATE TABLE IF NOT EXISTS "MessageBoxRecentContributions" ("messageBoxId" text, "contributorId" text, '
    '"value" text, PRIMARY KEY ("messageBoxId", "contributorId"))',

    'CREATE TABLE IF NOT EXISTS "AuthzInvitations" ("resourceId" text, "email" text, "inviterUserId" text, '
    '"role" text, PRIMARY KEY ("resourceId", "email"))',

    'CREATE TABLE IF NOT EXISTS "AuthzInvitationsResourceIdByEmail" ("email" text, "resourceId" text, '
    'PRIMARY KEY ("email", "resourceId"))',

    'CREATE TABLE IF NOT EXISTS "AuthzInvitationsTokenByEmail" ("email" text PRIMARY KEY, "token" text)',

    'CREATE TABLE IF NOT EXISTS "AuthzInvitationsEmailByToken" ("token" text PRIMARY KEY, "email" text)',

    'CREATE TABLE IF NOT EXISTS "LibraryIndex" ("bucketKey" text, "rankedResourceId" text, "value" text, '
    'PRIMARY KEY ("bucketKey", "rankedResourceId"))',

    'CREATE TABLE IF NOT EXISTS "Etherpad" ("key" text PRIMARY KEY, "data" text)',
]

CREATE_INDEX_STATEMENTS = [
    'CREATE INDEX IF NOT EXISTS ON "Principals" ("tenantAlias")',
]


async def make_sure_tables_exist(target, table_statements: List[str] = None,
                                 index_statements: List[str] = None):
    """Create every table, then every index, on the target keyspace."""
    if table_statements is None:
        table_statements = CREATE_TABLE_STATEMENTS
    if index_statements is None:
        index_statements = CREATE_INDEX_STATEMENTS

    print(f"  ✓ Creating {len(table_statements)} table(s) on {target.host}/{target.keyspace}...")
    await asyncio.gather(*(target.execute(statement) for statement in table_statements))

    for statement in index_statements:
        await target.execute(statement)

    print("  ✓ Schema is in place")


async def list_tables(connection) -> List[str]:
    """Return the table names in the connection's keyspace."""
    rows = await connection.execute(
        'SELECT table_name FROM system_schema.tables WHERE keyspace_name = ?',
        [connection.keyspace]
    )
    return sorted(row['table_name'] for row in rows)
