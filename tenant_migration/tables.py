"""
Every table copied for a tenant, and the order they are copied in.

Units in the same stage run concurrently. A unit may only read registry
entries produced in an earlier stage; pipeline.validate_plan() checks
this before anything is fetched.
"""

from tenant_migration.batch_writer import InsertTemplate
from tenant_migration.copy_unit import CopyUnit, id_prefix, produces
from tenant_migration.key_registry import (
    CONTENT_IDS,
    DISCUSSION_IDS,
    ETHERPAD_GROUP_IDS,
    ETHERPAD_PAD_IDS,
    FOLDER_GROUP_IDS,
    INVITATION_EMAILS,
    INVITATION_TOKENS,
    LOGIN_IDS,
    MESSAGE_IDS,
    OAUTH_CLIENT_IDS,
    RESOURCE_IDS,
    REVISION_IDS,
    TENANT_GROUP_IDS,
    TENANT_PRINCIPAL_IDS,
    TENANT_USER_IDS,
)
from tenant_migration.keyed_fetcher import KeyedFetch, TenantQuery, has_value
from tenant_migration.scan_filter import EtherpadScan, ScanFilter, key_segment_equals, tenant_alias_equals

# Message boxes belong to content items, discussions and other resources
MESSAGE_BOX_KEYS = (CONTENT_IDS, DISCUSSION_IDS, RESOURCE_IDS)


def columns(*names):
    return tuple(names)


# ---------------------------------------------------------------------------
# Tenant
# ---------------------------------------------------------------------------

TENANT = CopyUnit(
    name='tenant',
    fetcher=TenantQuery('Tenant', 'alias'),
    insert=InsertTemplate('Tenant', columns(
        'alias', 'active', 'countryCode', 'displayName', 'emailDomains', 'host')),
    verify=True,
)

CONFIG = CopyUnit(
    name='config',
    fetcher=TenantQuery('Config'),
    insert=InsertTemplate('Config', columns('tenantAlias', 'configKey', 'value')),
    verify=True,
)

PRINCIPALS = CopyUnit(
    name='principals',
    fetcher=TenantQuery('Principals'),
    insert=InsertTemplate('Principals', columns(
        'principalId', 'acceptedTC', 'admin:global', 'admin:tenant', 'created',
        'createdBy', 'deleted', 'description', 'displayName', 'email',
        'emailPreference', 'joinable', 'largePictureUri', 'lastModified', 'locale',
        'mediumPictureUri', 'notificationsLastRead', 'notificationsUnread',
        'publicAlias', 'smallPictureUri', 'tenantAlias', 'visibility')),
    producers=(
        produces(TENANT_PRINCIPAL_IDS, 'principalId'),
        produces(TENANT_USER_IDS, 'principalId', where=id_prefix('principalId', 'u')),
        produces(TENANT_GROUP_IDS, 'principalId', where=id_prefix('principalId', 'g')),
    ),
    verify=True,
)

# ---------------------------------------------------------------------------
# Keyed by principal, or scanned
# ---------------------------------------------------------------------------

PRINCIPALS_BY_EMAIL = CopyUnit(
    name='principals_by_email',
    fetcher=KeyedFetch('PrincipalsByEmail', 'principalId', (TENANT_PRINCIPAL_IDS,),
                       allow_filtering=True),
    insert=InsertTemplate('PrincipalsByEmail', columns('email', 'principalId')),
    verify=True,
)

AUTHZ_MEMBERS = CopyUnit(
    name='authz_members',
    fetcher=KeyedFetch('AuthzMembers', 'memberId', (TENANT_PRINCIPAL_IDS,),
                       allow_filtering=True),
    insert=InsertTemplate('AuthzMembers', columns('resourceId', 'memberId', 'role')),
    verify=True,
)

AUTHZ_ROLES = CopyUnit(
    name='authz_roles',
    fetcher=KeyedFetch('AuthzRoles', 'principalId', (TENANT_PRINCIPAL_IDS,)),
    insert=InsertTemplate('AuthzRoles', columns('principalId', 'resourceId', 'role')),
    producers=(produces(RESOURCE_IDS, 'resourceId'),),
    verify=True,
)

USERS_GROUP_VISITS = CopyUnit(
    name='users_group_visits',
    fetcher=KeyedFetch('UsersGroupVisits', 'userId', (TENANT_PRINCIPAL_IDS,)),
    insert=InsertTemplate('UsersGroupVisits', columns('userId', 'groupId', 'latestVisit')),
    verify=True,
)

FOLLOWING_USERS_FOLLOWERS = CopyUnit(
    name='following_users_followers',
    fetcher=KeyedFetch('FollowingUsersFollowers', 'userId', (TENANT_PRINCIPAL_IDS,)),
    insert=InsertTemplate('FollowingUsersFollowers', columns('userId', 'followerId', 'value')),
    verify=True,
)

FOLLOWING_USERS_FOLLOWING = CopyUnit(
    name='following_users_following',
    fetcher=KeyedFetch('FollowingUsersFollowing', 'userId', (TENANT_PRINCIPAL_IDS,)),
    insert=InsertTemplate('FollowingUsersFollowing', columns('userId', 'followingId', 'value')),
    verify=True,
)

AUTHENTICATION_USER_LOGIN_ID = CopyUnit(
    name='authentication_user_login_id',
    fetcher=KeyedFetch('AuthenticationUserLoginId', 'userId', (TENANT_PRINCIPAL_IDS,)),
    insert=InsertTemplate('AuthenticationUserLoginId', columns('userId', 'loginId', 'value')),
    producers=(produces(LOGIN_IDS, 'loginId'),),
    verify=True,
)

OAUTH_CLIENTS_BY_USER = CopyUnit(
    name='oauth_clients_by_user',
    fetcher=KeyedFetch('OAuthClientsByUser', 'userId', (TENANT_USER_IDS,)),
    insert=InsertTemplate('OAuthClientsByUser', columns('userId', 'clientId', 'value')),
    producers=(produces(OAUTH_CLIENT_IDS, 'clientId'),),
    verify=True,
)

FOLDERS = CopyUnit(
    name='folders',
    fetcher=ScanFilter('Folders', tenant_alias_equals('tenantAlias')),
    insert=InsertTemplate('Folders', columns(
        'id', 'created', 'createdBy', 'description', 'displayName', 'groupId',
        'lastModified', 'previews', 'tenantAlias', 'visibility')),
    producers=(produces(FOLDER_GROUP_IDS, 'groupId'),),
    verify=True,
)

DISCUSSIONS = CopyUnit(
    name='discussions',
    fetcher=ScanFilter('Discussions', tenant_alias_equals('tenantAlias')),
    insert=InsertTemplate('Discussions', columns(
        'id', 'created', 'createdBy', 'description', 'displayName',
        'lastModified', 'tenantAlias', 'visibility')),
    producers=(produces(DISCUSSION_IDS, 'id'),),
    verify=True,
)

# Message ids look like 'd:cam:abc#1500000000000:xyz'
MESSAGES = CopyUnit(
    name='messages',
    fetcher=ScanFilter('Messages', key_segment_equals('id', 1)),
    insert=InsertTemplate('Messages', columns('id', 'body', 'createdBy', 'deleted', 'threadKey')),
    producers=(produces(MESSAGE_IDS, 'id'),),
    verify=True,
)

# ---------------------------------------------------------------------------
# Keyed by resource, folder group, login or OAuth client
# ---------------------------------------------------------------------------

FOLDERS_GROUP_ID = CopyUnit(
    name='folders_group_id',
    fetcher=KeyedFetch('FoldersGroupId', 'groupId', (FOLDER_GROUP_IDS,)),
    insert=InsertTemplate('FoldersGroupId', columns('groupId', 'folderId')),
    verify=True,
)

CONTENT = CopyUnit(
    name='content',
    fetcher=KeyedFetch('Content', 'contentId', (RESOURCE_IDS,)),
    insert=InsertTemplate('Content', columns(
        'contentId', 'created', 'createdBy', 'description', 'displayName',
        'etherpadGroupId', 'etherpadPadId', 'filename', 'largeUri', 'lastModified',
        'latestRevisionId', 'link', 'mediumUri', 'mime', 'previews',
        'resourceSubType', 'size', 'smallUri', 'status', 'tenantAlias',
        'thumbnailUri', 'uri', 'visibility', 'wideUri')),
    producers=(
        produces(CONTENT_IDS, 'contentId'),
        produces(ETHERPAD_PAD_IDS, 'etherpadPadId'),
        produces(ETHERPAD_GROUP_IDS, 'etherpadGroupId'),
    ),
    verify=True,
)

AUTHZ_INVITATIONS = CopyUnit(
    name='authz_invitations',
    fetcher=KeyedFetch('AuthzInvitations', 'resourceId', (RESOURCE_IDS,)),
    insert=InsertTemplate('AuthzInvitations', columns('resourceId', 'email', 'inviterUserId', 'role')),
    producers=(produces(INVITATION_EMAILS, 'email'),),
    verify=True,
)

AUTHENTICATION_LOGIN_ID = CopyUnit(
    name='authentication_login_id',
    fetcher=KeyedFetch('AuthenticationLoginId', 'loginId', (LOGIN_IDS,)),
    insert=InsertTemplate('AuthenticationLoginId', columns('loginId', 'password', 'secret', 'userId')),
    verify=True,
)

OAUTH_CLIENT = CopyUnit(
    name='oauth_client',
    fetcher=KeyedFetch('OAuthClient', 'id', (OAUTH_CLIENT_IDS,)),
    insert=InsertTemplate('OAuthClient', columns('id', 'displayName', 'secret', 'userId')),
    verify=True,
)

# The tenant alias is the third segment of the bucket key
LIBRARY_INDEX = CopyUnit(
    name='library_index',
    fetcher=ScanFilter('LibraryIndex', key_segment_equals('bucketKey', 2)),
    insert=InsertTemplate('LibraryIndex', columns('bucketKey', 'rankedResourceId', 'value')),
    verify=True,
)

# ---------------------------------------------------------------------------
# Keyed by content, message box or invitation email
# ---------------------------------------------------------------------------

REVISION_BY_CONTENT = CopyUnit(
    name='revision_by_content',
    fetcher=KeyedFetch('RevisionByContent', 'contentId', (CONTENT_IDS,)),
    insert=InsertTemplate('RevisionByContent', columns('contentId', 'created', 'revisionId')),
    producers=(produces(REVISION_IDS, 'revisionId'),),
    verify=True,
)

MESSAGE_BOX_MESSAGES = CopyUnit(
    name='message_box_messages',
    fetcher=KeyedFetch('MessageBoxMessages', 'messageBoxId', MESSAGE_BOX_KEYS,
                       row_filter=has_value('threadKey')),
    insert=InsertTemplate('MessageBoxMessages', columns('messageBoxId', 'threadKey', 'value')),
    verify=True,
)

MESSAGE_BOX_MESSAGES_DELETED = CopyUnit(
    name='message_box_messages_deleted',
    fetcher=KeyedFetch('MessageBoxMessagesDeleted', 'messageBoxId', MESSAGE_BOX_KEYS),
    insert=InsertTemplate('MessageBoxMessagesDeleted', columns('messageBoxId', 'createdTimestamp', 'value')),
    verify=True,
)

MESSAGE_BOX_RECENT_CONTRIBUTIONS = CopyUnit(
    name='message_box_recent_contributions',
    fetcher=KeyedFetch('MessageBoxRecentContributions', 'messageBoxId', MESSAGE_BOX_KEYS),
    insert=InsertTemplate('MessageBoxRecentContributions', columns('messageBoxId', 'contributorId', 'value')),
    verify=True,
)

AUTHZ_INVITATIONS_RESOURCE_ID_BY_EMAIL = CopyUnit(
    name='authz_invitations_resource_id_by_email',
    fetcher=KeyedFetch('AuthzInvitationsResourceIdByEmail', 'email', (INVITATION_EMAILS,)),
    insert=InsertTemplate('AuthzInvitationsResourceIdByEmail', columns('email', 'resourceId')),
    verify=True,
)

AUTHZ_INVITATIONS_TOKEN_BY_EMAIL = CopyUnit(
    name='authz_invitations_token_by_email',
    fetcher=KeyedFetch('AuthzInvitationsTokenByEmail', 'email', (INVITATION_EMAILS,)),
    insert=InsertTemplate('AuthzInvitationsTokenByEmail', columns('email', 'token')),
    producers=(produces(INVITATION_TOKENS, 'token'),),
    verify=True,
)

ETHERPAD = CopyUnit(
    name='etherpad',
    fetcher=EtherpadScan('Etherpad'),
    insert=InsertTemplate('Etherpad', columns('key', 'data')),
    verify=True,
)

# ---------------------------------------------------------------------------
# Keyed by revision or invitation token
# ---------------------------------------------------------------------------

REVISIONS = CopyUnit(
    name='revisions',
    fetcher=KeyedFetch('Revisions', 'revisionId', (REVISION_IDS,)),
    insert=InsertTemplate('Revisions', columns(
        'revisionId', 'contentId', 'created', 'createdBy', 'etherpadHtml',
        'filename', 'largeUri', 'mediumUri', 'mime', 'previews', 'previewsId',
        'size', 'smallUri', 'status', 'thumbnailUri', 'uri', 'wideUri')),
    verify=True,
)

AUTHZ_INVITATIONS_EMAIL_BY_TOKEN = CopyUnit(
    name='authz_invitations_email_by_token',
    fetcher=KeyedFetch('AuthzInvitationsEmailByToken', 'token', (INVITATION_TOKENS,)),
    insert=InsertTemplate('AuthzInvitationsEmailByToken', columns('token', 'email')),
    verify=True,
)

# ---------------------------------------------------------------------------
# Stage plan
# ---------------------------------------------------------------------------

STAGES = [
    ('tenant', [TENANT, CONFIG, PRINCIPALS]),
    ('principals', [
        PRINCIPALS_BY_EMAIL, AUTHZ_MEMBERS, AUTHZ_ROLES, USERS_GROUP_VISITS,
        FOLLOWING_USERS_FOLLOWERS, FOLLOWING_USERS_FOLLOWING,
        AUTHENTICATION_USER_LOGIN_ID, OAUTH_CLIENTS_BY_USER,
        FOLDERS, DISCUSSIONS, MESSAGES,
    ]),
    ('resources', [
        FOLDERS_GROUP_ID, CONTENT, AUTHZ_INVITATIONS,
        AUTHENTICATION_LOGIN_ID, OAUTH_CLIENT, LIBRARY_INDEX,
    ]),
    ('content', [
        REVISION_BY_CONTENT, MESSAGE_BOX_MESSAGES, MESSAGE_BOX_MESSAGES_DELETED,
        MESSAGE_BOX_RECENT_CONTRIBUTIONS, AUTHZ_INVITATIONS_RESOURCE_ID_BY_EMAIL,
        AUTHZ_INVITATIONS_TOKEN_BY_EMAIL, ETHERPAD,
    ]),
    ('revisions', [REVISIONS, AUTHZ_INVITATIONS_EMAIL_BY_TOKEN]),
]


def all_units():
    """Every unit in plan order."""
    return [unit for _, units in STAGES for unit in units]
