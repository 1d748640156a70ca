###########################################################################
# IMPORT STATEMENTS #######################################################
###########################################################################

from typing import Callable, Dict, List, Mapping, Sequence, Tuple

import numpy as np

###########################################################################
# HISTORY UTILITIES #######################################################
###########################################################################


def history_to_array(history: Mapping[float, np.ndarray]) -> np.ndarray:
    """
    Converts a time-indexed history into a 2D array.

    Parameters
    ----------
    history : dict
        Mapping from epoch [s] to the vector saved at that epoch.

    Returns
    -------
    np.ndarray
        Array of shape (N, 1 + k), sorted by time; the first column holds the
        epochs, the remaining columns the saved values.
    """
    if not history:
        return np.empty((0, 1))
    times = sorted(history.keys())
    return np.vstack([np.concatenate(([time], np.ravel(history[time]))) for time in times])


def final_entry(history: Mapping[float, np.ndarray]) -> Tuple[float, np.ndarray]:
    """Last epoch of a history and the values saved at that epoch."""
    final_time = max(history.keys())
    return final_time, np.ravel(history[final_time])

###########################################################################
# TRAJECTORY REDUCTIONS ###################################################
###########################################################################


class TrajectoryReduction:
    """
    Turns the result of one propagation into objectives and constraints.

    The number of objectives and constraints is fixed for a problem instance,
    since the optimizer relies on it.
    """

    number_of_objectives: int = 1
    number_of_constraints: int = 0

    def __call__(self,
                 state_history: Dict[float, np.ndarray],
                 dependent_variable_history: Dict[float, np.ndarray],
                 decision_variables: Sequence[float]) -> Tuple[List[float], List[float]]:
        raise NotImplementedError


class PlaceholderReduction(TrajectoryReduction):
    """Zero objective and no constraints, whatever the trajectory."""

    def __call__(self, state_history, dependent_variable_history, decision_variables):
        return [0.0], []


class FunctionReduction(TrajectoryReduction):
    """
    Reduction from a plain function.

    Parameters
    ----------
    function : callable
        ``function(state_history, dependent_variable_history, decision_variables)``
        returning ``(objectives, constraints)``.
    number_of_objectives : int
    number_of_constraints : int
    """

    def __init__(self,
                 function: Callable[..., Tuple[Sequence[float], Sequence[float]]],
                 number_of_objectives: int = 1,
                 number_of_constraints: int = 0):
        self.function = function
        self.number_of_objectives = number_of_objectives
        self.number_of_constraints = number_of_constraints

    def __call__(self, state_history, dependent_variable_history, decision_variables):
        objectives, constraints = self.function(
            state_history, dependent_variable_history, decision_variables)
        return [float(value) for value in objectives], [float(value) for value in constraints]
