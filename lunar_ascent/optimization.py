###########################################################################
# IMPORT STATEMENTS #######################################################
###########################################################################

import logging
from dataclasses import dataclass, field
from typing import List

import numpy as np
import pygmo as pg

# Problem-specific imports
from lunar_ascent.exceptions import PropagationFailed
from lunar_ascent.problem import LunarAscentProblem

logger = logging.getLogger(__name__)

###########################################################################
# OPTIMIZER INTEGRATION ###################################################
###########################################################################


class FailurePenalizedProblem:
    """
    pygmo problem scoring failed propagations with a penalty.

    A ``PropagationFailed`` raised by the wrapped problem is turned into the
    worst possible fitness, so that one diverging candidate does not abort
    the whole evolution.

    ``number_of_failures`` counts the calls made on this instance. pygmo
    deep-copies the problems it is given, so after ``optimize`` the count is
    found in ``OptimizationHistory.number_of_failures``.
    """

    def __init__(self, problem: LunarAscentProblem, penalty: float = 1.0E10):
        self.problem = problem
        self.penalty = penalty
        self.number_of_failures = 0

    def fitness(self, decision_variables) -> List[float]:
        try:
            return self.problem.fitness(decision_variables)
        except PropagationFailed as caught:
            self.number_of_failures += 1
            logger.info("Penalizing %s: %s", list(decision_variables), caught)
            return [self.penalty] * self.problem.get_nobj()

    def get_bounds(self):
        return self.problem.get_bounds()

    def get_nobj(self) -> int:
        return self.problem.get_nobj()

    def get_name(self) -> str:
        return self.problem.get_name()


@dataclass
class OptimizationHistory:
    """Fitness and decision variables of the population, per generation."""

    fitness_list: List[np.ndarray] = field(default_factory=list)
    population_list: List[np.ndarray] = field(default_factory=list)
    champion_x: np.ndarray = None
    champion_f: np.ndarray = None
    number_of_failures: int = 0

    def record(self, population) -> None:
        self.fitness_list.append(population.get_f())
        self.population_list.append(population.get_x())
        self.champion_x = population.champion_x
        self.champion_f = population.champion_f
        # pygmo works on its own copy of the problem, read the counter back from it
        penalized_problem = population.problem.extract(FailurePenalizedProblem)
        if penalized_problem is not None:
            self.number_of_failures = penalized_problem.number_of_failures


def optimize(problem,
             algorithm=None,
             population_size: int = 50,
             number_of_evolutions: int = 50,
             seed: int = None) -> OptimizationHistory:
    """
    Evolve a population on a lunar ascent problem.

    Parameters
    ----------
    problem : LunarAscentProblem or FailurePenalizedProblem
        User-defined problem handed to pygmo.
    algorithm : pygmo.algorithm, optional
        Defaults to differential evolution with one generation per evolution.
    population_size : int, optional
        Number of individuals.
    number_of_evolutions : int, optional
        Number of times the algorithm is applied to the population.
    seed : int, optional
        Seed of the initial population and of the default algorithm.

    Returns
    -------
    OptimizationHistory
        Population and fitness after initialisation and each evolution, and
        the number of penalized propagations.
    """
    if algorithm is None:
        algorithm = pg.algorithm(pg.de(gen=1) if seed is None else pg.de(gen=1, seed=seed))
    # Create pygmo problem
    prob = pg.problem(problem)
    # Initialize pygmo population
    if seed is None:
        pop = pg.population(prob, size=population_size)
    else:
        pop = pg.population(prob, size=population_size, seed=seed)

    history = OptimizationHistory()
    history.record(pop)
    for i in range(number_of_evolutions):
        # Evolve the population
        pop = algorithm.evolve(pop)
        history.record(pop)
        logger.info("Evolving population; at generation %d, champion %s", i, pop.champion_f)

    return history
