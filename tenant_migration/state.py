"""
Run-state file.

Each run records, per stage and copy unit, the final state and row counts
in migration_state_<tenant>.json. The file is a report for --status and
for operators; a new run always starts from the first stage.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Dict

from tenant_migration.config import STATE_FILE_DIR
from tenant_migration.copy_unit import CopyResult


def get_state_file_path(tenant_alias: str, state_dir: Path = None) -> Path:
    """Generate state file path based on the tenant alias."""
    return (state_dir or STATE_FILE_DIR) / f"migration_state_{tenant_alias}.json"


def load_migration_state(state_file: Path) -> Dict:
    """Load migration state from file."""
    if state_file.exists():
        try:
            with open(state_file, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            print(f"  ⚠ Warning: Could not load state file: {e}")
    return {
        "created_at": datetime.now().isoformat(),
        "stages": {}
    }


def save_migration_state(state_file: Path, state: Dict):
    """Save migration state to file."""
    state["updated_at"] = datetime.now().isoformat()
    try:
        state_file.parent.mkdir(parents=True, exist_ok=True)
        with open(state_file, 'w') as f:
            json.dump(state, f, indent=2, default=str)
    except IOError as e:
        print(f"  ⚠ Warning: Could not save state file: {e}")


def start_run(state: Dict, tenant_alias: str, source: str, target: str):
    """Reset the per-unit records for a fresh run."""
    state["tenant_alias"] = tenant_alias
    state["source"] = source
    state["target"] = target
    state["status"] = "running"
    state["started_at"] = datetime.now().isoformat()
    state["stages"] = {}
    state.pop("error", None)
    state.pop("finished_at", None)


def finish_run(state: Dict, status: str, error: str = None):
    state["status"] = status
    state["finished_at"] = datetime.now().isoformat()
    if error:
        state["error"] = error


def set_unit_state(state: Dict, stage: str, result: CopyResult):
    """Record the outcome of one copy unit."""
    units = state.setdefault("stages", {}).setdefault(stage, {})

    units[result.unit] = {
        "table": result.table,
        "status": result.state.value,
        "rows_fetched": result.rows_fetched,
        "rows_scanned": result.rows_scanned,
        "rows": result.rows_written,
        "batches": result.batches,
        "timestamp": datetime.now().isoformat()
    }
    if result.skipped:
        units[result.unit]["reason"] = "no keys to fetch"
    if result.error is not None:
        units[result.unit]["reason"] = str(result.error)


def print_migration_status(state_file: Path):
    """Print the current migration status from state file."""
    if not state_file.exists():
        print(f"  ℹ No migration state file found: {state_file}")
        return

    state = load_migration_state(state_file)

    print(f"\n{'='*70}")
    print(f"MIGRATION STATUS")
    print(f"{'='*70}")
    print(f"State file: {state_file}")
    print(f"Tenant: {state.get('tenant_alias', 'N/A')}")
    print(f"Source: {state.get('source', 'N/A')}")
    print(f"Target: {state.get('target', 'N/A')}")
    print(f"Run status: {state.get('status', 'N/A')}")
    print(f"Started: {state.get('started_at', 'N/A')}")
    print(f"Last updated: {state.get('updated_at', 'N/A')}")
    if state.get("error"):
        print(f"Error: {state['error']}")

    for stage_name, units in state.get("stages", {}).items():
        done = sum(1 for u in units.values() if u.get("status") == "done")
        failed = sum(1 for u in units.values() if u.get("status") == "failed")
        print(f"\n  📁 Stage: {stage_name}")
        print(f"     Tables: {done} done, {failed} failed, {len(units)} total")

        for unit_name, unit_data in units.items():
            status = unit_data.get("status", "unknown")
            rows = unit_data.get("rows", 0)
            reason = unit_data.get("reason", "")

            if status == "done" and reason:
                icon = "⊗"
            elif status == "done":
                icon = "✓"
            elif status == "failed":
                icon = "✗"
            else:
                icon = "?"

            reason_str = f" ({reason})" if reason else ""
            print(f"       {icon} {unit_data.get('table', unit_name)}: {status} [{rows} rows]{reason_str}")

    print(f"\n{'='*70}")
