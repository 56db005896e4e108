import pytest
from two_light_sim import LightStats, RandomSource, SimParams, SimulationResult

class ScriptedSource:
    """RandomSource stand-in that replays fixed percent draws."""

    def __init__(self, draws):
        self._draws = list(draws)
        self.calls = 0

    def percent(self):
        value = self._draws[self.calls % len(self._draws)]
        self.calls += 1
        return value

@pytest.fixture
def seeded_source():
    return RandomSource(seed=42)

@pytest.fixture
def scripted_source():
    return ScriptedSource

@pytest.fixture
def default_params():
    return SimParams(arrival_rate_left=40, period_left=5, arrival_rate_right=60, period_right=8)

def make_result(left, right):
    """Build a successful SimulationResult from two 4-tuples (count, avg, max, clearance)."""
    return SimulationResult.completed(LightStats(*left), LightStats(*right))

@pytest.fixture
def result_factory():
    return make_result

@pytest.fixture
def synthetic_results():
    return [
        make_result((10, 4.0, 9, 3), (20, 6.0, 12, 5)),
        make_result((14, 2.0, 7, 1), (16, 8.0, 10, 7)),
        make_result((12, 6.0, 11, 0), (18, 4.0, 14, 9)),
        make_result((8, 3.0, 5, 2), (22, 5.0, 16, 3)),
    ]
