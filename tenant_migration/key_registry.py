"""
Key registry: the ID sets discovered while copying one tenant.

Copy units that fetch by key (roles by principal, revisions by content,
...) read the IDs an earlier unit registered here. Every entry has exactly
one producer, and the stage plan guarantees the producer has finished
before any reader starts, so no locking is needed under asyncio.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

# Registry key names
TENANT_PRINCIPAL_IDS = 'tenantPrincipalIds'
TENANT_USER_IDS = 'tenantUserIds'
TENANT_GROUP_IDS = 'tenantGroupIds'
RESOURCE_IDS = 'resourceIds'
CONTENT_IDS = 'contentIds'
REVISION_IDS = 'revisionIds'
FOLDER_GROUP_IDS = 'folderGroupIds'
DISCUSSION_IDS = 'discussionIds'
MESSAGE_IDS = 'messageIds'
INVITATION_EMAILS = 'invitationEmails'
INVITATION_TOKENS = 'invitationTokens'
LOGIN_IDS = 'loginIds'
OAUTH_CLIENT_IDS = 'oauthClientIds'
ETHERPAD_PAD_IDS = 'etherpadPadIds'
ETHERPAD_GROUP_IDS = 'etherpadGroupIds'


def unique(values: Iterable) -> List:
    """Drop duplicates and empty values, keeping first-seen order."""
    seen = set()
    result = []
    for value in values:
        if value is None or value == '' or value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


class KeyRegistry:
    """Named, ordered ID sets shared between the copy units of one run."""

    def __init__(self):
        self._entries: Dict[str, List[str]] = {}

    def set(self, key: str, values: Iterable[str]):
        """Overwrite the entry with the unique values, in first-seen order."""
        self._entries[key] = unique(values)

    def get(self, key: str) -> List[str]:
        """Return a copy of the entry, or an empty list if it was never set."""
        return list(self._entries.get(key, []))

    def is_empty(self, key: str) -> bool:
        return not self._entries.get(key)

    def is_set(self, key: str) -> bool:
        return key in self._entries

    def union(self, *keys: str) -> List[str]:
        """Unique IDs across several entries, in the order the keys are given."""
        values = []
        for key in keys:
            values.extend(self._entries.get(key, []))
        return unique(values)

    def sizes(self) -> Dict[str, int]:
        return {key: len(values) for key, values in self._entries.items()}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __repr__(self):
        return f"KeyRegistry({self.sizes()})"


@dataclass
class MigrationContext:
    """Everything a copy unit needs besides the two connections."""

    tenant_alias: str
    registry: KeyRegistry = field(default_factory=KeyRegistry)
