"""
External group members report.

Groups of the migrated tenant can have members from other tenants. Those
memberships are copied, but the members themselves are not, so someone
has to follow up with the people listed here once the tenant has moved.
"""

from collections import OrderedDict
from typing import Dict, List

from tenant_migration.key_registry import TENANT_GROUP_IDS, TENANT_PRINCIPAL_IDS, MigrationContext, unique
from tenant_migration.scan_filter import ScanFilter, external_membership
from tenant_migration.tables import PRINCIPALS

EXTERNAL_MEMBERS = ScanFilter('AuthzMembers', external_membership(TENANT_GROUP_IDS, TENANT_PRINCIPAL_IDS))

PRINCIPAL_DETAILS_QUERY = 'SELECT * FROM "Principals" WHERE "principalId" IN ?'


async def find_external_members(source, context: MigrationContext) -> Dict[str, List[str]]:
    """
    Find members of the tenant's groups that belong to another tenant.

    Returns:
        Ordered mapping of group display name to
        ['<member display name> from <member tenant>', ...]
    """
    if not context.registry.is_set(TENANT_PRINCIPAL_IDS):
        fetched = await PRINCIPALS.fetcher.fetch(source, context)
        PRINCIPALS.register_keys(fetched.rows, context.registry)

    if context.registry.is_empty(TENANT_GROUP_IDS):
        print(f"  ℹ Tenant '{context.tenant_alias}' has no groups")
        return OrderedDict()

    memberships = (await EXTERNAL_MEMBERS.fetch(source, context)).rows
    if not memberships:
        return OrderedDict()

    principal_ids = unique(
        principal_id
        for row in memberships
        for principal_id in (row['resourceId'], row['memberId'])
    )
    rows = await source.execute(PRINCIPAL_DETAILS_QUERY, [principal_ids], table='Principals')
    principals = {row['principalId']: row for row in rows}

    by_group: Dict[str, List[str]] = OrderedDict()
    for row in memberships:
        group = principals.get(row['resourceId'])
        if group is None:
            print(f"  ⚠ Group {row['resourceId']} is undefined")
            continue

        member = principals.get(row['memberId'], {})
        member_name = member.get('displayName', row['memberId'])
        member_tenant = member.get('tenantAlias', 'another tenant')
        by_group.setdefault(group.get('displayName') or row['resourceId'], []).append(
            f"{member_name} from {member_tenant}"
        )

    return by_group


def print_external_members(by_group: Dict[str, List[str]]):
    """Print the report in a copy-paste friendly layout."""
    print("\n" + "=" * 70)
    print("EXTERNAL GROUP MEMBERS")
    print("=" * 70)

    if not by_group:
        print("  ✓ No group has members from another tenant")
        return

    for group, members in by_group.items():
        print(f"\n  {group}")
        print("    " + ",\n    ".join(members))

    total = sum(len(members) for members in by_group.values())
    print(f"\n  ⚠ {total} external membership(s) in {len(by_group)} group(s)")
