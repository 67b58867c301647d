import json

import pytest
from typer.testing import CliRunner

from thawpool.cli.main import app
from thawpool.safe_uint import SCALE

runner = CliRunner()

SCENARIO = """
config:
  floors: {min_active: 1}
reserve: {total_reserve: 100000, active: 5000}
balances: {alice: 1000000}
start: {height: 1, timestamp: 1700000000}
steps:
  - op: buy
    caller: alice
    args: {min_tokens_out: 1, value: 1000}
    expect_ok: true
  - op: sell
    caller: alice
    args: {token_amount: 10, min_value_out: 0}
  - advance: {blocks: 300, seconds: 3600}
    op: thaw
    caller: keeper
    expect_ok: true
  - op: mint_free_money
    caller: alice
"""


def test_quote_json():
    r = runner.invoke(app, ["quote", "--total", "10", "--active", "5", "--min-active", "1", "--value", "3", "--json"])
    assert r.exit_code == 0, r.output
    d = json.loads(r.stdout)
    assert d["dormant"] == 5
    assert d["price_wad"] == SCALE
    assert d["price"] == "1"
    assert d["tokens_for_value"] == 3


def test_quote_table_and_sentinel():
    r = runner.invoke(app, ["quote", "--total", "5", "--active", "5", "--min-active", "1"])
    assert r.exit_code == 0, r.output
    assert "inf" in r.stdout
    assert "U256_MAX" in r.stdout


def test_quote_rejects_active_above_total():
    r = runner.invoke(app, ["quote", "--total", "5", "--active", "6"])
    assert r.exit_code == 2


@pytest.fixture
def scenario_file(tmp_path):
    p = tmp_path / "scenario.yaml"
    p.write_text(SCENARIO, encoding="utf-8")
    return p


def test_simulate_json(scenario_file):
    r = runner.invoke(app, ["simulate", str(scenario_file), "--json"])
    assert r.exit_code == 0, r.output
    doc = json.loads(r.stdout)
    steps = doc["steps"]
    assert steps[0]["ok"] and steps[0]["result"] == 52  # 997 * 5000 // 95000
    assert steps[1]["error"] == "COOLDOWN_ACTIVE"
    assert steps[2]["result"] == {"released": 890, "caller_reward": 8, "active_after": 6882}
    assert steps[3]["error"] == "UNKNOWN_OP"
    final = doc["final"]
    assert final["invariant_holds"] is True
    assert final["total_reserve"] == 101000 - 8
    assert final["token_supply"] == 52


def test_simulate_failed_expectation_exits_1(tmp_path):
    p = tmp_path / "bad.json"
    p.write_text(
        json.dumps(
            {
                "reserve": {"total_reserve": 100, "active": 10},
                "steps": [{"op": "thaw", "caller": "k", "expect_ok": True}],
            }
        ),
        encoding="utf-8",
    )
    r = runner.invoke(app, ["simulate", str(p)])
    assert r.exit_code == 1
    assert "THAW_TOO_SOON" in r.stdout


def test_config_show_honours_env(monkeypatch):
    monkeypatch.setenv("THAWPOOL_FEE_BPS", "77")
    r = runner.invoke(app, ["config-show"])
    assert r.exit_code == 0, r.output
    assert json.loads(r.stdout)["fees"]["fee_bps"] == 77


def test_config_show_rejects_bad_env(monkeypatch):
    monkeypatch.setenv("THAWPOOL_FEE_BPS", "5000")
    r = runner.invoke(app, ["config-show"])
    assert r.exit_code == 2
