"""Verify that migration 001 has correct upgrade/downgrade structure."""

import ast
from pathlib import Path

MIGRATION_FILE = (
    Path(__file__).resolve().parent.parent
    / "alembic"
    / "versions"
    / "001_initial_schema.py"
)

EXPECTED_TABLES = {"shifts", "kitting_jobs", "route_steps", "scenarios", "scenario_changes", "job_delays"}


def _parse_module() -> ast.Module:
    return ast.parse(MIGRATION_FILE.read_text())


def _op_calls(tree: ast.Module, function: str, method: str) -> list[ast.Call]:
    func = next(
        node for node in ast.walk(tree) if isinstance(node, ast.FunctionDef) and node.name == function
    )
    return [
        node
        for node in ast.walk(func)
        if isinstance(node, ast.Call)
        and isinstance(node.func, ast.Attribute)
        and node.func.attr == method
        and isinstance(node.func.value, ast.Name)
        and node.func.value.id == "op"
    ]


def test_migration_001_file_exists():
    assert MIGRATION_FILE.exists(), f"Migration file not found: {MIGRATION_FILE}"


def test_migration_001_revision():
    tree = _parse_module()
    assignments: dict[str, object] = {}
    for node in ast.walk(tree):
        if isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name):
            if node.target.id in ("revision", "down_revision") and node.value:
                assignments[node.target.id] = ast.literal_eval(node.value)
    assert assignments["revision"] == "001_initial_schema"
    assert assignments["down_revision"] is None


def test_migration_001_has_upgrade_and_downgrade():
    tree = _parse_module()
    func_names = {node.name for node in ast.walk(tree) if isinstance(node, ast.FunctionDef)}
    assert "upgrade" in func_names
    assert "downgrade" in func_names


def test_upgrade_creates_all_tables():
    tables = {call.args[0].value for call in _op_calls(_parse_module(), "upgrade", "create_table")}
    assert tables == EXPECTED_TABLES


def test_downgrade_drops_all_tables():
    tables = {call.args[0].value for call in _op_calls(_parse_module(), "downgrade", "drop_table")}
    assert tables == EXPECTED_TABLES


def test_single_active_scenario_index_is_partial_unique():
    calls = _op_calls(_parse_module(), "upgrade", "create_index")
    index = next(call for call in calls if call.args[0].value == "uq_scenarios_single_active")
    keywords = {kw.arg for kw in index.keywords}
    assert {"unique", "postgresql_where"} <= keywords


def test_default_shifts_seeded():
    calls = _op_calls(_parse_module(), "upgrade", "bulk_insert")
    assert len(calls) == 1
    rows = calls[0].args[1]
    assert isinstance(rows, ast.List)
    assert len(rows.elts) == 3
