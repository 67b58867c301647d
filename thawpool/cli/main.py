from __future__ import annotations

"""
thawpool.cli.main
-----------------

Operator tooling for the reserve engine:

- quote: price and conversions for a given reserve split (no engine needed).
- simulate: replay a scenario file against a fresh engine and report every
  step's outcome plus the final state.
- config-show: print the effective configuration (defaults <- file <- env).

Scenario files are JSON or YAML:

    config:                      # optional, same shape as `config-show --json`
      floors: {min_active: 1}
    reserve: {total_reserve: 10000, active: 5000}
    balances: {alice: 1000000}   # native balances
    start: {height: 1, timestamp: 1700000000}
    steps:
      - op: buy
        caller: alice
        args: {min_tokens_out: 1, value: 1000}
        expect_ok: true
      - advance: {blocks: 300, seconds: 3600}
        op: thaw
        caller: keeper

Each step may first move the chain (`advance: {blocks, seconds}` or
`set: {height, timestamp}`), then runs `op` (optional) with `caller` and
`args`. Steps marked `expect_ok: true` that fail make the command exit 1.

Examples
--------
# Price a 10/5 split and convert 1 unit of value
python -m thawpool.cli.main quote --total 10 --active 5 --min-active 1 --value 1

# Replay a scenario, machine-readable
python -m thawpool.cli.main simulate examples/scenario.yaml --json
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import typer
import yaml

from ..adapters.blocks import ManualBlockSource
from ..adapters.native_bank import NativeBank
from ..config import PoolConfig, from_env, load_config, read_structured_file
from ..errors import ThawPoolError
from ..reserve.engine import ReserveEngine
from ..reserve.ledger import ReserveState
from ..reserve.pricing import Quote, tokens_for_value, value_for_tokens
from ..safe_uint import SCALE, U256_MAX
from ..version import __version__

log = logging.getLogger(__name__)

app = typer.Typer(
    name="thawpool",
    add_completion=False,
    no_args_is_help=True,
    help="Inspect and simulate thawpool reserve engines.",
)

# Operations a scenario step may call on the engine.
SCENARIO_OPS = frozenset(
    {
        "deposit",
        "buy",
        "sell",
        "thaw",
        "claim_yield",
        "sync_my_yield",
        "emergency_drain",
        "set_fee_bps",
        "set_caller_reward_bps",
        "set_thaw_params",
        "set_yield_rate",
        "set_max_mint_per_tx",
        "set_min_active",
        "set_halt_below",
        "set_min_blocks_between_trades",
        "set_protected_reserve_floor",
        "set_timelock",
        "transfer_ownership",
        "pause",
        "unpause",
    }
)

# -------------------- utils --------------------


def _fmt_wad(x: int) -> str:
    if x == U256_MAX:
        return "inf"
    whole, frac = divmod(x, SCALE)
    s = f"{whole}.{frac:018d}".rstrip("0").rstrip(".")
    return s or "0"


def _pad(s: str, n: int) -> str:
    return s if len(s) >= n else s + " " * (n - len(s))


def _print_kv(rows: List[tuple]) -> None:
    w = max(len(k) for k, _ in rows) + 2
    for k, v in rows:
        typer.echo(_pad(k, w) + str(v))


def _quote_dict(q: Quote) -> Dict[str, Any]:
    return {
        "total_reserve": q.total_reserve,
        "active": q.active,
        "dormant": q.dormant,
        "effective_active": q.effective_active,
        "price_wad": q.price_wad,
        "price": _fmt_wad(q.price_wad),
    }


def _result_json(v: Any) -> Any:
    if hasattr(v, "_asdict"):
        return dict(v._asdict())
    return v


def _final_state(eng: ReserveEngine) -> Dict[str, Any]:
    d = _quote_dict(eng.quote())
    d.update(
        {
            "invariant_holds": eng.invariant_holds(),
            "token_supply": eng.token.total_supply(),
            "custody": eng.bank.balance_of(eng.address),
            "paused": eng.paused,
            "last_thaw_timestamp": eng.last_thaw_timestamp,
            "events": len(eng.events),
            "event_digest": eng.events.digest().hex(),
        }
    )
    return d


def _fail(msg: str, code: int = 2) -> None:
    typer.secho(msg, fg=typer.colors.RED, err=True)
    raise typer.Exit(code)


# -------------------- scenario replay --------------------


def build_engine(scenario: Mapping[str, Any]) -> ReserveEngine:
    """Fresh engine, bank and block source for a scenario document."""
    cfg = PoolConfig.from_dict(scenario.get("config") or {})
    start = scenario.get("start") or {}
    blocks = ManualBlockSource(
        height=int(start.get("height", 1)),
        timestamp=int(start.get("timestamp", 1_700_000_000)),
        block_time=int(start.get("block_time", 12)),
    )
    bank = NativeBank({str(k): int(v) for k, v in (scenario.get("balances") or {}).items()})
    reserve = scenario.get("reserve") or {}
    return ReserveEngine(
        blocks=blocks,
        config=cfg,
        bank=bank,
        total_reserve=int(reserve.get("total_reserve", 0)),
        active=int(reserve.get("active", 0)),
    )


def run_step(eng: ReserveEngine, idx: int, step: Mapping[str, Any]) -> Dict[str, Any]:
    blocks = eng.blocks
    if "set" in step:
        s = step["set"] or {}
        blocks.set(height=s.get("height"), timestamp=s.get("timestamp"))
    if "advance" in step:
        a = step["advance"] or {}
        blocks.advance(int(a.get("blocks", 1)), a.get("seconds"))

    out: Dict[str, Any] = {
        "step": idx,
        "op": step.get("op"),
        "height": blocks.height(),
        "timestamp": blocks.timestamp(),
    }
    op = step.get("op")
    if op is None:
        out["ok"] = True
        return out
    if op not in SCENARIO_OPS:
        out.update(ok=False, error="UNKNOWN_OP", message=f"unknown op {op!r}")
        return out

    args = dict(step.get("args") or {})
    try:
        result = getattr(eng, op)(step.get("caller", ""), **args)
    except ThawPoolError as e:
        out.update(ok=False, error=e.code, message=e.message, details=e.details)
    except TypeError as e:
        out.update(ok=False, error="BAD_ARGS", message=str(e))
    else:
        out.update(ok=True, result=_result_json(result))
    return out


# -------------------- commands --------------------


@app.command("quote")
def cmd_quote(
    total: int = typer.Option(..., "--total", min=0, help="Total reserve (base units)."),
    active: int = typer.Option(..., "--active", min=0, help="Active reserve (base units)."),
    min_active: Optional[int] = typer.Option(
        None, "--min-active", min=0, help="Pricing floor for active (default: effective config)."
    ),
    value: Optional[int] = typer.Option(None, "--value", min=0, help="Convert this net value to tokens."),
    tokens: Optional[int] = typer.Option(None, "--tokens", min=0, help="Convert this token amount to value."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Show dormant, effective active, price and conversions for a reserve split."""
    if active > total:
        _fail(f"active ({active}) exceeds total ({total})")
    floor = min_active if min_active is not None else load_config().floors.min_active
    s = ReserveState(total_reserve=total, active=active)
    d = _quote_dict(Quote.of(s, floor))
    d["min_active"] = floor
    if value is not None:
        d["tokens_for_value"] = tokens_for_value(s, value, floor)
    if tokens is not None:
        d["value_for_tokens"] = value_for_tokens(s, tokens, floor)

    if json_out:
        typer.echo(json.dumps(d, indent=2, sort_keys=True))
        return
    rows = [
        ("total", d["total_reserve"]),
        ("active", d["active"]),
        ("dormant", d["dormant"]),
        ("effective active", d["effective_active"]),
        ("price", d["price"]),
        ("price (wad)", "U256_MAX" if d["price_wad"] == U256_MAX else d["price_wad"]),
    ]
    if value is not None:
        rows.append((f"tokens for {value}", d["tokens_for_value"]))
    if tokens is not None:
        rows.append((f"value for {tokens}", d["value_for_tokens"]))
    _print_kv(rows)


@app.command("simulate")
def cmd_simulate(
    scenario: Path = typer.Argument(..., exists=True, dir_okay=False, help="Scenario file (.json/.yaml)."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Replay SCENARIO against a fresh engine."""
    try:
        doc = read_structured_file(scenario)
        eng = build_engine(doc)
    except (ThawPoolError, ValueError, yaml.YAMLError) as e:
        _fail(f"invalid scenario: {e}")

    steps = doc.get("steps") or []
    outcomes = []
    failed_expectations = 0
    for i, step in enumerate(steps):
        res = run_step(eng, i, step)
        if step.get("expect_ok") and not res["ok"]:
            failed_expectations += 1
            log.warning("step %s (%s) expected to succeed: %s", i, res.get("op"), res.get("error"))
        outcomes.append(res)
    final = _final_state(eng)

    if json_out:
        typer.echo(json.dumps({"steps": outcomes, "final": final}, indent=2, sort_keys=True))
    else:
        header = " ".join((_pad("STEP", 5), _pad("HEIGHT", 8), _pad("OP", 30), _pad("OUTCOME", 28)))
        typer.secho(header, bold=True)
        for r in outcomes:
            outcome = f"ok {r.get('result', '')}".strip() if r["ok"] else f"FAIL {r['error']}"
            typer.echo(
                " ".join((_pad(str(r["step"]), 5), _pad(str(r["height"]), 8), _pad(str(r["op"] or "-"), 30), outcome))
            )
        typer.echo("")
        typer.secho("Final state:", bold=True)
        _print_kv(list(final.items()))

    if failed_expectations:
        raise typer.Exit(1)


@app.command("config-show")
def cmd_config_show(
    file: Optional[Path] = typer.Option(None, "--file", exists=True, dir_okay=False, help="Config file to layer under env."),
) -> None:
    """Print the effective configuration as JSON."""
    try:
        if file is not None:
            cfg = from_env(PoolConfig.from_dict(read_structured_file(file)))
        else:
            cfg = load_config()
    except ThawPoolError as e:
        _fail(f"invalid configuration: {e}")
    typer.echo(json.dumps(cfg.to_dict(), indent=2, sort_keys=True))


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"thawpool {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Python logging level."),
    version: bool = typer.Option(
        False, "--version", "-V", help="Print version and exit", is_eager=True, callback=_print_version
    ),
) -> None:
    """thawpool operator tooling."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def get_app() -> typer.Typer:
    return app


if __name__ == "__main__":
    app()
