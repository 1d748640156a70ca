"""
===============================================================================
LUNAR ASCENT - Optimizer Integration Test Suite
===============================================================================
Tests for the pygmo integration: failure penalty and a short differential
evolution run on the fake propagation of conftest.
===============================================================================
"""

import numpy as np
import pytest

pg = pytest.importorskip("pygmo")

from lunar_ascent.exceptions import InvalidParameterization, PropagationFailed
from lunar_ascent.optimization import FailurePenalizedProblem, optimize
from lunar_ascent.problem import LunarAscentProblem
from lunar_ascent.reduction import FunctionReduction, final_entry

from conftest import FakeSimulatorFactory

CONSTANT_ANGLE_RANGE = [(0.0, 20.0E3), (-0.5, 0.5)]


def final_altitude(state_history, dependent_variable_history, decision_variables):
    _, values = final_entry(dependent_variable_history)
    return [-values[0]], []


def make_problem(bodies, propagator_settings, simulator_factory):
    return LunarAscentProblem(bodies,
                              "integrator_settings",
                              propagator_settings,
                              CONSTANT_ANGLE_RANGE,
                              311.0,
                              reduction=FunctionReduction(final_altitude),
                              simulator_factory=simulator_factory)


class TestFailurePenalizedProblem:

    def test_failure_is_penalized(self, bodies, propagator_settings):
        simulator_factory = FakeSimulatorFactory(error=RuntimeError("diverged"))
        problem = FailurePenalizedProblem(make_problem(bodies, propagator_settings, simulator_factory),
                                          penalty=1.0E6)
        assert problem.fitness([1.0E4, 0.0]) == [1.0E6]
        assert problem.number_of_failures == 1

    def test_success_passes_through(self, bodies, propagator_settings, simulator_factory):
        inner = make_problem(bodies, propagator_settings, simulator_factory)
        problem = FailurePenalizedProblem(inner)
        assert problem.fitness([1.0E4, 0.0]) == inner.get_last_objectives()
        assert problem.number_of_failures == 0
        assert problem.get_bounds() == inner.get_bounds()
        assert problem.get_nobj() == 1

    def test_invalid_parameterization_not_penalized(self, bodies, propagator_settings, simulator_factory):
        problem = FailurePenalizedProblem(make_problem(bodies, propagator_settings, simulator_factory))
        with pytest.raises(InvalidParameterization):
            problem.fitness([1.0E4])

    def test_accepted_by_pygmo(self, bodies, propagator_settings, simulator_factory):
        prob = pg.problem(FailurePenalizedProblem(make_problem(bodies, propagator_settings, simulator_factory)))
        assert prob.get_nobj() == 1
        assert list(prob.get_bounds()[0]) == [0.0, -0.5]


class TestOptimize:

    def test_short_evolution(self, bodies, propagator_settings):
        simulator_factory = FakeSimulatorFactory(number_of_steps=20)
        problem = make_problem(bodies, propagator_settings, simulator_factory)
        history = optimize(problem, population_size=8, number_of_evolutions=3, seed=7)

        assert len(history.fitness_list) == len(history.population_list) == 4
        assert history.population_list[0].shape == (8, 2)
        best_per_generation = [np.min(fitness) for fitness in history.fitness_list]
        assert all(later <= earlier for earlier, later in zip(best_per_generation, best_per_generation[1:]))
        assert history.champion_f[0] == pytest.approx(best_per_generation[-1])

    def test_failures_counted_on_pygmo_copy(self, bodies, propagator_settings):
        penalized_problem = FailurePenalizedProblem(
            make_problem(bodies, propagator_settings, FakeSimulatorFactory(error=RuntimeError("diverged"))))
        history = optimize(penalized_problem, population_size=6, number_of_evolutions=2, seed=5)
        assert history.number_of_failures >= 6
        assert penalized_problem.number_of_failures == 0

    def test_same_seed_same_result(self, bodies, propagator_settings):
        first = optimize(make_problem(bodies, propagator_settings, FakeSimulatorFactory(number_of_steps=10)),
                         population_size=6, number_of_evolutions=2, seed=3)
        second = optimize(make_problem(bodies, propagator_settings, FakeSimulatorFactory(number_of_steps=10)),
                          population_size=6, number_of_evolutions=2, seed=3)
        np.testing.assert_allclose(first.champion_x, second.champion_x)
