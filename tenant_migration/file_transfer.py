"""
Copy the tenant's files from the source file host to the target one.

The hosts cannot reach each other, so every folder takes two hops:

  source:<path>/files/<type>/<tenant>  ->  <staging>/files/<type>/<tenant>
  <staging>/files/<type>/<tenant>      ->  target:<path>/files/<type>/<tenant>

Assets (<path>/assets/<tenant>) take the same route.
"""

import subprocess
from pathlib import Path
from typing import Any, Dict, List

from tenant_migration.config import FILE_CONTENT_TYPES, FILE_STAGING_DIR
from tenant_migration.errors import FileTransferError


def remote_location(file_host: Dict[str, Any], path: str) -> str:
    """user@host:path, or host:path when no user is configured."""
    if file_host.get('user'):
        return f"{file_host['user']}@{file_host['host']}:{path}"
    return f"{file_host['host']}:{path}"


def ssh_target(file_host: Dict[str, Any]) -> str:
    if file_host.get('user'):
        return f"{file_host['user']}@{file_host['host']}"
    return file_host['host']


def build_rsync_command(source: str, destination: str) -> List[str]:
    return ['rsync', '-az', '-e', 'ssh', source, destination]


def build_mkdir_command(file_host: Dict[str, Any], directory: str) -> List[str]:
    return ['ssh', ssh_target(file_host), 'mkdir', '-p', directory]


def run_command(command: List[str]):
    """Run one command, raising FileTransferError if it fails."""
    print(f"    $ {' '.join(command)}")
    result = subprocess.run(command, capture_output=True, text=True)
    if result.returncode != 0:
        raise FileTransferError(command, result.returncode, result.stderr)


def plan_folder_transfer(source_host: Dict[str, Any], target_host: Dict[str, Any],
                         tenant_alias: str, folder: str, staging_dir: Path) -> List[List[str]]:
    """
    Commands that copy <folder>/<tenant> from source to target through the
    staging directory. Nothing is run here.

    Args:
        source_host: Source file host record (host, user, path)
        target_host: Target file host record (host, user, path)
        tenant_alias: Tenant whose folder is copied
        folder: Folder relative to the file root, e.g. 'files/c' or 'assets'
        staging_dir: Local staging directory

    Returns:
        List of commands, in order
    """
    source_directory = f"{source_host['path'].rstrip('/')}/{folder}/{tenant_alias}"
    local_directory = staging_dir / folder
    remote_directory = f"{target_host['path'].rstrip('/')}/{folder}"

    return [
        build_mkdir_command(target_host, remote_directory),
        build_rsync_command(remote_location(source_host, source_directory), f"{local_directory}/"),
        build_rsync_command(f"{local_directory / tenant_alias}", remote_location(target_host, f"{remote_directory}/")),
    ]


def transfer_folder(source_host: Dict[str, Any], target_host: Dict[str, Any],
                    tenant_alias: str, folder: str, staging_dir: Path = None):
    staging_dir = staging_dir or FILE_STAGING_DIR
    # rsync fails when the local parent directory is missing
    (staging_dir / folder).mkdir(parents=True, exist_ok=True)

    print(f"  ✓ Syncing {folder}/{tenant_alias}: {source_host['host']} -> localhost -> {target_host['host']}")
    for command in plan_folder_transfer(source_host, target_host, tenant_alias, folder, staging_dir):
        run_command(command)


def transfer_files(source_config: Dict[str, Any], target_config: Dict[str, Any],
                   content_types: List[str] = None, staging_dir: Path = None) -> int:
    """
    Copy files/<type>/<tenant> for every content type, then the assets.

    Returns:
        Number of folders copied
    """
    if content_types is None:
        content_types = FILE_CONTENT_TYPES

    source_host = source_config['file_host']
    target_host = target_config['file_host']
    tenant_alias = source_config['tenant_alias']

    if not source_host.get('host') or not target_host.get('host'):
        print("  ⊗ Skipping file transfer (READ_FILE_HOST / WRITE_FILE_HOST not set)")
        return 0

    print("\n" + "=" * 70)
    print(f"  Transferring files for tenant '{tenant_alias}'")
    print("=" * 70)
    print("  ℹ Rsync operation under way, this may take a while...")

    folders = [f"files/{content_type}" for content_type in content_types] + ['assets']
    for folder in folders:
        transfer_folder(source_host, target_host, tenant_alias, folder, staging_dir)

    print(f"  ✓ Transferred {len(folders)} folder(s)")
    return len(folders)
