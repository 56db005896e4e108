"""
Two-Light Traffic Queue Simulation — One Run
============================================

Model
-----
- Two lights (LEFT, RIGHT) share one junction; exactly one is GREEN at a time.
- The GREEN light holds for ``period`` iterations (its timer counts down),
  then hands over. The iteration in which the lights switch carries no traffic.
- **Arrivals**: Bernoulli per side and per iteration. A uniform draw
  ``v`` in [0, 100) produces a vehicle when ``floor(v) <= rate`` (rate 0 never
  produces one).
- **Departures**: one vehicle per non-switch iteration leaves the GREEN queue.
- After the arrival window (500 iterations by default) no more vehicles come;
  each light counts the iterations its queue still needs to drain
  (clearance time). The run ends when both queues are empty.

Statistics per light: vehicle count, blended average wait
``avg = (wait + avg) / 2``, maximum wait, clearance time.

Example
-------
    python two_light_sim.py 40 5 60 8 --seed 42
"""

from __future__ import annotations  # Enable postponed evaluation of type hints (forward references)
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Deque, Iterator, List, Optional, Tuple
import argparse
import random
from collections import deque  # FIFO waiting line per light

from sim_errors import AllocationError, InvalidInputError, NonTerminatingRunError, SimulationError
from sim_logging import setup_logger

logger = setup_logger(__name__)

ARRIVAL_WINDOW = 500  # Last iteration at which vehicles may still arrive

# ------------------------------ config -------------------------------------

@dataclass
class SimParams:
    arrival_rate_left: int  # Percent chance [0, 100] of an arrival per iteration
    period_left: int  # Iterations the left light stays green
    arrival_rate_right: int
    period_right: int

    def validate(self) -> "SimParams":
        for name in ("arrival_rate_left", "arrival_rate_right"):
            rate = getattr(self, name)
            if isinstance(rate, bool) or not isinstance(rate, int):
                raise InvalidInputError(f"{name} must be an integer, got {rate!r}")
            if not (0 <= rate <= 100):
                raise InvalidInputError(f"{name} must be in [0, 100], got {rate}")
        for name in ("period_left", "period_right"):
            period = getattr(self, name)
            if isinstance(period, bool) or not isinstance(period, int):
                raise InvalidInputError(f"{name} must be an integer, got {period!r}")
            if period < 1:
                raise InvalidInputError(f"{name} must be a positive integer, got {period}")
        return self

@dataclass
class SimConfig:
    arrival_window: int = ARRIVAL_WINDOW  # Arrivals happen while t <= arrival_window
    max_iterations: Optional[int] = None  # Safety bound on a single run; None = until both queues drain

    def __post_init__(self) -> None:
        if self.arrival_window < 0:
            raise InvalidInputError("arrival_window must be non-negative")
        if self.max_iterations is not None and self.max_iterations <= self.arrival_window:
            raise InvalidInputError("max_iterations must exceed arrival_window")

# ------------------------------ randomness ---------------------------------

class RandomSource:
    """Uniform draws in [0, 100) from one generator, advanced on every draw."""

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None) -> None:
        self._rng = rng if rng is not None else random.Random(seed)

    def percent(self) -> float:
        return self._rng.random() * 100.0

# ------------------------------ entities -----------------------------------

@dataclass(frozen=True)
class Vehicle:
    generated_at: int  # Iteration at which the vehicle joined the queue

class VehicleQueue:
    """FIFO line of vehicles waiting at one light."""

    def __init__(self) -> None:
        self._items: Deque[Vehicle] = deque()

    def push(self, vehicle: Vehicle) -> None:
        self._items.append(vehicle)

    def pop(self) -> Vehicle:
        if not self._items:
            raise IndexError("pop from an empty vehicle queue")
        return self._items.popleft()

    def peek(self) -> Optional[Vehicle]:
        return self._items[0] if self._items else None

    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Vehicle]:
        return iter(self._items)

class LightStatus(Enum):
    RED = 0
    GREEN = 1

class Side(Enum):
    LEFT = "left"
    RIGHT = "right"

@dataclass(frozen=True)
class LightStats:
    vehicle_count: float = 0.0
    avg_wait: float = 0.0
    max_wait: float = 0.0
    clearance_time: float = 0.0

    def blend(self, other: "LightStats") -> "LightStats":
        """Pairwise halving of every field: (self + other) / 2."""
        return LightStats(**{
            f.name: (getattr(self, f.name) + getattr(other, f.name)) / 2
            for f in fields(self)
        })

@dataclass
class Light:
    period: int  # Iterations this light stays green per phase
    status: LightStatus = LightStatus.RED
    timer: int = field(init=False, default=0)  # Countdown to next switch while green
    avg_wait: float = 0.0
    max_wait: int = 0
    vehicle_count: int = 0
    clearance_time: int = 0
    queue: VehicleQueue = field(default_factory=VehicleQueue, repr=False)

    def __post_init__(self) -> None:
        self.timer = self.period

    @property
    def is_green(self) -> bool:
        return self.status is LightStatus.GREEN

    def tick(self, other: "Light") -> bool:
        """Advance the controller for this (green) light. Returns True on a switch."""
        if self.timer == 0:
            self.timer = self.period  # Reset own timer for the next green phase
            self.status = LightStatus.RED
            other.status = LightStatus.GREEN
            return True
        self.timer -= 1
        return False

    def enqueue(self, t: int) -> Vehicle:
        vehicle = Vehicle(generated_at=t)
        self.queue.push(vehicle)
        self.vehicle_count += 1
        return vehicle

    def record_departure(self, vehicle: Vehicle, t: int) -> None:
        wait = t - vehicle.generated_at
        self.avg_wait = (wait + self.avg_wait) / 2  # Recency-weighted blend, not a true mean
        if wait > self.max_wait:
            self.max_wait = wait

    def depart(self, t: int) -> Optional[Vehicle]:
        if self.queue.is_empty():
            return None
        vehicle = self.queue.pop()
        self.record_departure(vehicle, t)
        return vehicle

    def stats(self) -> LightStats:
        return LightStats(
            vehicle_count=self.vehicle_count,
            avg_wait=self.avg_wait,
            max_wait=self.max_wait,
            clearance_time=self.clearance_time,
        )

@dataclass(frozen=True)
class SimulationResult:
    success: bool
    left: Optional[LightStats] = None
    right: Optional[LightStats] = None
    error: Optional[SimulationError] = None

    @classmethod
    def completed(cls, left: LightStats, right: LightStats) -> "SimulationResult":
        return cls(success=True, left=left, right=right)

    @classmethod
    def failed(cls, error: SimulationError) -> "SimulationResult":
        return cls(success=False, error=error)

    def side(self, side: Side) -> LightStats:
        if not self.success:
            raise ValueError("failed run carries no statistics")
        return self.left if side is Side.LEFT else self.right

# ------------------------------ simulator ----------------------------------

class TwoLightSim:
    def __init__(self, params: SimParams, rng: RandomSource, cfg: Optional[SimConfig] = None):
        self.params = params.validate()
        self.cfg = cfg or SimConfig()
        self.rng = rng  # Injected; never reseeded per draw

        # Left starts red, right starts green
        self.left = Light(params.period_left, status=LightStatus.RED)
        self.right = Light(params.period_right, status=LightStatus.GREEN)

        self.t = 0  # Iteration counter
        self.switches = 0  # Number of light changes so far

    @property
    def lights(self) -> Tuple[Light, Light]:
        return self.left, self.right

    def green_pair(self) -> Tuple[Light, Light]:
        """Return (green, red)."""
        if self.right.is_green:
            return self.right, self.left
        return self.left, self.right

    def in_clearance(self) -> bool:
        return self.t > self.cfg.arrival_window

    def drained(self) -> bool:
        return self.left.queue.is_empty() and self.right.queue.is_empty()

    # ------------------------------ mechanics --------------------------------
    def _arrives(self, rate: int) -> bool:
        draw = self.rng.percent()  # Always draw, so each side consumes one value per iteration
        return rate > 0 and int(draw) <= rate

    def _spawn_arrivals(self) -> None:
        left_hit = self._arrives(self.params.arrival_rate_left)
        right_hit = self._arrives(self.params.arrival_rate_right)
        if left_hit:
            self.left.enqueue(self.t)
        if right_hit:
            self.right.enqueue(self.t)

    def _count_clearance(self) -> None:
        for light in self.lights:
            if not light.queue.is_empty():
                light.clearance_time += 1

    # ------------------------------- run -------------------------------------
    def step(self) -> bool:
        """Run one iteration. Returns False once the run has finished."""
        if self.in_clearance():
            self._count_clearance()
            if self.drained():
                return False
        if self.cfg.max_iterations is not None and self.t >= self.cfg.max_iterations:
            raise NonTerminatingRunError(
                f"run did not drain within {self.cfg.max_iterations} iterations "
                f"(queues: left={len(self.left.queue)}, right={len(self.right.queue)})"
            )

        green, red = self.green_pair()
        if green.tick(red):
            self.switches += 1  # The switch consumes this iteration
        else:
            if not self.in_clearance():
                self._spawn_arrivals()
            green.depart(self.t)
        self.t += 1
        return True

    def run(self) -> SimulationResult:
        while self.step():
            pass
        logger.debug(
            "run finished at t=%d after %d switches (left=%d vehicles, right=%d vehicles)",
            self.t, self.switches, self.left.vehicle_count, self.right.vehicle_count,
        )
        return SimulationResult.completed(self.left.stats(), self.right.stats())


def run_one_simulation(
    params: SimParams,
    rng: RandomSource,
    cfg: Optional[SimConfig] = None,
) -> SimulationResult:
    """Run one simulation; an allocation failure yields a failed result instead of raising."""
    sim = TwoLightSim(params, rng, cfg)
    try:
        return sim.run()
    except MemoryError as exc:
        logger.warning("run aborted at t=%d: out of memory", sim.t, exc_info=True)
        return SimulationResult.failed(AllocationError(f"allocation failed at t={sim.t}: {exc}"))

# ------------------------------ CLI ----------------------------------------

def build_parser(description: str) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description=description)
    p.add_argument("arrival_rate_left", type=int, help="Left arrival rate, percent [0, 100]")
    p.add_argument("light_period_left", type=int, help="Left green period (iterations)")
    p.add_argument("arrival_rate_right", type=int, help="Right arrival rate, percent [0, 100]")
    p.add_argument("light_period_right", type=int, help="Right green period (iterations)")
    p.add_argument("--seed", type=int, default=None, help="RNG seed (default: OS entropy)")
    p.add_argument("--arrival-window", type=int, default=ARRIVAL_WINDOW,
                   help=f"Last iteration with arrivals (default {ARRIVAL_WINDOW})")
    p.add_argument("--max-iterations", type=int, default=None,
                   help="Abort a run that has not drained after this many iterations")
    p.add_argument("--log-level", default="WARNING",
                   choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return p

def params_from_args(p: argparse.ArgumentParser, args: argparse.Namespace) -> Tuple[SimParams, SimConfig]:
    try:
        params = SimParams(args.arrival_rate_left, args.light_period_left,
                           args.arrival_rate_right, args.light_period_right).validate()
        cfg = SimConfig(arrival_window=args.arrival_window, max_iterations=args.max_iterations)
    except InvalidInputError as e:
        p.error(str(e))  # Exits with status 2
    return params, cfg

def format_light(name: str, stats: LightStats) -> List[str]:
    return [
        f"    from {name}:",
        f"        number of vehicles: {stats.vehicle_count:f}",
        f"        average waiting time: {stats.avg_wait:f}",
        f"        maximum waiting time: {stats.max_wait:f}",
        f"        clearance time: {stats.clearance_time:f}",
    ]

def main(argv: Optional[List[str]] = None) -> int:
    p = build_parser("Two-light traffic queue simulation (single run)")
    args = p.parse_args(argv)
    logger.setLevel(args.log_level)
    params, cfg = params_from_args(p, args)

    result = run_one_simulation(params, RandomSource(args.seed), cfg)
    if not result.success:
        print(f"Run failed: {result.error}")
        return 1
    lines = ["Results (single run):"]
    lines += format_light(Side.LEFT.value, result.left)
    lines += format_light(Side.RIGHT.value, result.right)
    print("\n".join(lines))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
