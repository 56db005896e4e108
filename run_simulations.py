
from __future__ import annotations
from dataclasses import dataclass, fields
from typing import Callable, Dict, List, Optional

import pandas as pd

from sim_errors import InvalidInputError, NoSuccessfulRunsError, SimulationError
from sim_logging import log_execution_time, set_level, setup_logger
from two_light_sim import (
    LightStats,
    RandomSource,
    Side,
    SimConfig,
    SimParams,
    SimulationResult,
    build_parser,
    format_light,
    params_from_args,
    run_one_simulation,
)

logger = setup_logger(__name__)

DEFAULT_RUNS = 100
AVERAGING_MODES = ("halving", "mean")

Simulate = Callable[[SimParams, RandomSource, Optional[SimConfig]], SimulationResult]


@dataclass
class AggregateResult:
    """Blended statistics over the successful runs of one batch."""

    left: LightStats
    right: LightStats
    attempted: int = 0
    succeeded: int = 0

    @classmethod
    def seed(cls, result: SimulationResult) -> "AggregateResult":
        return cls(left=result.left, right=result.right, attempted=1, succeeded=1)

    def fold(self, result: SimulationResult) -> None:
        """agg = (agg + run) / 2, field by field, for both lights."""
        self.left = self.left.blend(result.left)
        self.right = self.right.blend(result.right)
        self.succeeded += 1

    def side(self, side: Side) -> LightStats:
        return self.left if side is Side.LEFT else self.right


def runs_table(results: List[SimulationResult]) -> pd.DataFrame:
    """One row per successful run with left_* / right_* statistic columns."""
    rows: List[Dict[str, float]] = []
    for i, res in enumerate(results, start=1):
        row: Dict[str, float] = {"run": i}
        for side in Side:
            stats = res.side(side)
            for f in fields(stats):
                row[f"{side.value}_{f.name}"] = getattr(stats, f.name)
        rows.append(row)
    columns = ["run"] + [f"{s.value}_{f.name}" for s in Side for f in fields(LightStats)]
    return pd.DataFrame(rows, columns=columns)


class RunAggregator:

    def __init__(
        self,
        runs: int = DEFAULT_RUNS,
        simulate: Simulate = run_one_simulation,
        cfg: Optional[SimConfig] = None,
        averaging: str = "halving",
    ) -> None:
        if isinstance(runs, bool) or not isinstance(runs, int) or runs < 1:
            raise InvalidInputError("runs must be a positive integer")
        if averaging not in AVERAGING_MODES:
            raise InvalidInputError(f"averaging must be one of {AVERAGING_MODES}, got {averaging!r}")

        self.runs = runs
        self.simulate = simulate
        self.cfg = cfg
        self.averaging = averaging
        self.history: List[SimulationResult] = []
        self.failures: List[SimulationError] = []

    @log_execution_time(logger)
    def run(self, params: SimParams, rng: RandomSource) -> AggregateResult:
        """Attempt exactly ``runs`` simulations and blend the successful ones.

        Failed runs are logged and dropped; they still count as attempts.
        With ``averaging="halving"`` the first success seeds the aggregate and
        every later success is folded in with ``(agg + run) / 2``, so later runs
        weigh more. ``averaging="mean"`` reports the arithmetic mean instead.
        """
        params.validate()
        self.history = []
        self.failures = []
        agg: Optional[AggregateResult] = None

        for attempt in range(1, self.runs + 1):
            result = self.simulate(params, rng, self.cfg)
            if not result.success:
                logger.warning("run %d/%d discarded: %s", attempt, self.runs, result.error)
                self.failures.append(result.error)
                continue
            self.history.append(result)
            if agg is None:
                agg = AggregateResult.seed(result)
            else:
                agg.fold(result)

        if agg is None:
            raise NoSuccessfulRunsError(f"all {self.runs} runs failed")

        if self.averaging == "mean":
            agg = self._mean_result()
        agg.attempted = self.runs
        logger.info("%d of %d runs succeeded", agg.succeeded, agg.attempted)
        return agg

    def _mean_result(self) -> AggregateResult:
        means = runs_table(self.history).drop(columns=["run"]).mean()
        per_side = {
            side: LightStats(**{f.name: float(means[f"{side.value}_{f.name}"]) for f in fields(LightStats)})
            for side in Side
        }
        return AggregateResult(
            left=per_side[Side.LEFT],
            right=per_side[Side.RIGHT],
            succeeded=len(self.history),
        )


def run_simulations(
    params: SimParams,
    runs: int = DEFAULT_RUNS,
    rng: Optional[RandomSource] = None,
    cfg: Optional[SimConfig] = None,
) -> AggregateResult:
    """Convenience wrapper: halving blend over ``runs`` attempts."""
    aggregator = RunAggregator(runs=runs, cfg=cfg)
    return aggregator.run(params, rng or RandomSource())


def format_report(params: SimParams, agg: AggregateResult) -> str:
    """Fixed-format text report: the four inputs, then the eight blended statistics."""
    lines = [
        "Parameter Values:",
        "    from left:",
        f"        traffic arrival rate: {params.arrival_rate_left}",
        f"        traffic light period {params.period_left}",
        "    from right:",
        f"        traffic arrival rate: {params.arrival_rate_right}",
        f"        traffic light period {params.period_right}",
        f"Results (averaged over {agg.attempted} runs):",
    ]
    lines += format_light(Side.LEFT.value, agg.left)
    lines += format_light(Side.RIGHT.value, agg.right)
    return "\n".join(lines)


def parse_args(argv: Optional[List[str]] = None):
    p = build_parser("Two-light traffic queue simulation, averaged over many runs")
    p.add_argument("--runs", type=int, default=DEFAULT_RUNS, help=f"Number of runs (default {DEFAULT_RUNS})")
    p.add_argument("--averaging", choices=AVERAGING_MODES, default="halving",
                   help="halving: (agg + run) / 2 per run (default); mean: arithmetic mean")
    p.add_argument("--show-runs", action="store_true", help="Also print the per-run statistics table")
    args = p.parse_args(argv)
    if args.runs < 1:
        p.error("--runs must be a positive integer")
    params, cfg = params_from_args(p, args)
    return args, params, cfg


def main(argv: Optional[List[str]] = None) -> int:
    args, params, cfg = parse_args(argv)
    set_level(args.log_level, __name__, "two_light_sim")

    aggregator = RunAggregator(runs=args.runs, cfg=cfg, averaging=args.averaging)
    try:
        agg = aggregator.run(params, RandomSource(args.seed))
    except SimulationError as e:  # no successful run, or a run exceeded --max-iterations
        logger.error("%s", e)
        return 1

    print(format_report(params, agg))
    if args.show_runs:
        df = runs_table(aggregator.history)
        print()
        print(df.to_string(index=False, float_format=lambda x: f"{x:.3f}"))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
