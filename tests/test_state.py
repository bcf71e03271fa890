"""Tests for tenant_migration.state - the run-state file."""

import json

from tenant_migration.copy_unit import CopyResult, UnitState
from tenant_migration.state import (
    finish_run,
    get_state_file_path,
    load_migration_state,
    print_migration_status,
    save_migration_state,
    set_unit_state,
    start_run,
)


def done(unit, table, rows, skipped=False):
    return CopyResult(unit=unit, table=table, state=UnitState.DONE,
                      rows_fetched=rows, rows_written=rows, batches=1 if rows else 0, skipped=skipped)


class TestStateFile:
    def test_path_is_per_tenant(self, tmp_path):
        assert get_state_file_path('cam', tmp_path) == tmp_path / 'migration_state_cam.json'

    def test_missing_file_gives_fresh_state(self, tmp_path):
        state = load_migration_state(tmp_path / 'missing.json')
        assert state['stages'] == {}
        assert 'created_at' in state

    def test_corrupt_file_gives_fresh_state(self, tmp_path, capsys):
        state_file = tmp_path / 'migration_state_cam.json'
        state_file.write_text('{not json')

        state = load_migration_state(state_file)

        assert state['stages'] == {}
        assert 'Could not load state file' in capsys.readouterr().out

    def test_round_trip_with_unit_results(self, tmp_path):
        state_file = get_state_file_path('cam', tmp_path / 'nested')
        state = load_migration_state(state_file)
        start_run(state, 'cam', 'shared/oae', 'tenant/oae_cam')

        set_unit_state(state, 'tenant', done('principals', 'Principals', 3))
        set_unit_state(state, 'resources', done('content', 'Content', 0, skipped=True))
        failed = CopyResult('etherpad', 'Etherpad', state=UnitState.FAILED, error=RuntimeError('boom'))
        set_unit_state(state, 'content', failed)
        finish_run(state, 'failed', 'boom')
        save_migration_state(state_file, state)

        saved = json.loads(state_file.read_text())
        assert saved['status'] == 'failed'
        assert saved['stages']['tenant']['principals']['rows'] == 3
        assert saved['stages']['resources']['content']['reason'] == 'no keys to fetch'
        assert saved['stages']['content']['etherpad']['status'] == 'failed'
        assert saved['stages']['content']['etherpad']['reason'] == 'boom'
        assert 'updated_at' in saved

    def test_start_run_clears_previous_results(self):
        state = {'stages': {'tenant': {}}, 'error': 'old', 'status': 'failed'}
        start_run(state, 'cam', 'a', 'b')
        assert state['stages'] == {}
        assert state['status'] == 'running'
        assert 'error' not in state


class TestPrintStatus:
    def test_no_state_file(self, tmp_path, capsys):
        print_migration_status(tmp_path / 'missing.json')
        assert 'No migration state file found' in capsys.readouterr().out

    def test_prints_units_per_stage(self, tmp_path, capsys):
        state_file = tmp_path / 'migration_state_cam.json'
        state = load_migration_state(state_file)
        start_run(state, 'cam', 'shared/oae', 'tenant/oae_cam')
        set_unit_state(state, 'tenant', done('principals', 'Principals', 3))
        finish_run(state, 'completed')
        save_migration_state(state_file, state)

        print_migration_status(state_file)

        out = capsys.readouterr().out
        assert 'Stage: tenant' in out
        assert '✓ Principals: done [3 rows]' in out
        assert 'Run status: completed' in out
