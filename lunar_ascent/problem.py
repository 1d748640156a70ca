###########################################################################
# IMPORT STATEMENTS #######################################################
###########################################################################

import enum
import logging
from typing import Callable, List, Sequence, Tuple, Type

import numpy as np

# Problem-specific imports
from lunar_ascent.exceptions import ConfigurationError, LunarAscentError, PropagationFailed
from lunar_ascent.guidance import (ThrustAccelerationSettings, ThrustGuidance,
                                   get_thrust_acceleration_model_from_parameters,
                                   select_thrust_guidance)
from lunar_ascent.propagator_settings import PropagatorConfiguration, TranslationalStateSettings
from lunar_ascent.reduction import PlaceholderReduction, TrajectoryReduction, final_entry

logger = logging.getLogger(__name__)

###########################################################################
# FORCE MODEL SPLICE ######################################################
###########################################################################


def splice_thrust_acceleration(translational_settings: TranslationalStateSettings,
                               propagator_settings: PropagatorConfiguration,
                               vehicle_name: str,
                               thrust_settings: ThrustAccelerationSettings) -> None:
    """
    Replaces the self-exerted accelerations of the vehicle by a new thrust.

    All accelerations the vehicle exerts on itself are removed, the new thrust
    settings are added, and the integrated state models are flagged for
    rebuilding before the next propagation.
    """
    acceleration_table = translational_settings.acceleration_table
    acceleration_table.replace_self_exerted(vehicle_name, [thrust_settings])
    translational_settings.reset_acceleration_settings(acceleration_table)
    propagator_settings.reset_integrated_state_models()

###########################################################################
# CREATE PROBLEM CLASS ####################################################
###########################################################################


class EvaluationState(enum.Enum):
    IDLE = "idle"
    CONFIGURING = "configuring"
    PROPAGATING = "propagating"
    REDUCING = "reducing"
    DONE = "done"


class LunarAscentProblem:
    """
    Class to initialize, simulate and optimize the Lunar Ascent.

    Each call to ``fitness`` builds a thrust model from the decision
    variables, sets it as the only self-exerted acceleration of the vehicle,
    propagates the full trajectory and reduces the result to objectives and
    constraints. The interface follows the pygmo user-defined problem
    conventions.

    Attributes
    ----------
    bodies
    integrator_settings
    propagator_settings
    constant_specific_impulse
    guidance_type
    reduction
    state

    Methods
    -------
    get_bounds()
    get_nobj()
    get_last_constraints()
    get_last_run_propagated_state_history()
    get_last_run_dependent_variable_history()
    get_last_run_dynamics_simulator()
    fitness(decision_variables)
    """

    def __init__(self,
                 bodies,
                 integrator_settings,
                 propagator_settings: PropagatorConfiguration,
                 decision_variable_range: Sequence[Tuple[float, float]],
                 constant_specific_impulse: float,
                 *,
                 guidance_type: Type[ThrustGuidance] = None,
                 reduction: TrajectoryReduction = None,
                 simulator_factory: Callable = None,
                 vehicle_name: str = "Vehicle"):
        """
        Constructor for the LunarAscentProblem class.

        Parameters
        ----------
        bodies : tudatpy.kernel.numerical_simulation.environment.SystemOfBodies
            System of bodies present in the simulation.
        integrator_settings : tudatpy.kernel.numerical_simulation.propagation_setup.integrator.IntegratorSettings
            Integrator settings to be provided to the dynamics simulator.
        propagator_settings : PropagatorConfiguration
            Propagator settings; must contain translational state settings.
        decision_variable_range : list of (float, float)
            Minimum and maximum of each decision variable, in order.
        constant_specific_impulse : float
            Specific impulse of the vehicle that is kept constant during the propagation [s].
        guidance_type : type, optional
            Thrust guidance parameterization. Selected from the number of
            decision variables if not given.
        reduction : TrajectoryReduction, optional
            Computes objectives and constraints from the propagation results.
        simulator_factory : callable, optional
            ``simulator_factory(bodies, integrator_settings, propagator_settings)``
            returning a dynamics simulator; defaults to the Tudat backend.
        vehicle_name : str, optional
            Name of the propagated vehicle (default "Vehicle").

        Raises
        ------
        ConfigurationError
            If the propagator settings have no translational state settings,
            or the decision variable range is malformed.
        """
        # Tudat objects cannot be deep-copied by pygmo; keep them behind functions
        self.bodies_function = lambda: bodies
        self.integrator_settings_function = lambda: integrator_settings
        self.propagator_settings_function = lambda: propagator_settings
        self.dynamics_simulator_function = lambda: None
        self.constant_specific_impulse = constant_specific_impulse
        self.vehicle_name = vehicle_name
        self.reduction = reduction if reduction is not None else PlaceholderReduction()

        if not isinstance(propagator_settings, PropagatorConfiguration):
            raise ConfigurationError(
                f"Expected PropagatorConfiguration, got {type(propagator_settings).__name__}")
        translational_state_propagator_settings = propagator_settings.translational_state_settings()
        self.translational_state_propagator_settings_function = lambda: translational_state_propagator_settings
        central_bodies = translational_state_propagator_settings.central_bodies
        self.central_body_name = central_bodies[0] if len(central_bodies) > 0 else None

        box_bound_minima, box_bound_maxima = [], []
        for minimum, maximum in decision_variable_range:
            if minimum > maximum:
                raise ConfigurationError(f"Decision variable range ({minimum}, {maximum}) is empty")
            box_bound_minima.append(float(minimum))
            box_bound_maxima.append(float(maximum))
        if not box_bound_minima:
            raise ConfigurationError("At least one decision variable is needed")
        self.box_bounds = (box_bound_minima, box_bound_maxima)

        if guidance_type is None:
            guidance_type = select_thrust_guidance(len(box_bound_minima))
        elif guidance_type.number_of_parameters != len(box_bound_minima):
            raise ConfigurationError(
                f"{guidance_type.__name__} uses {guidance_type.number_of_parameters} decision variables, "
                f"but {len(box_bound_minima)} ranges were given")
        self.guidance_type = guidance_type

        if simulator_factory is None:
            from lunar_ascent.simulator import create_dynamics_simulator
            simulator_factory = create_dynamics_simulator
        self.simulator_factory = simulator_factory

        self.state = EvaluationState.IDLE
        self.objectives: List[float] = []
        self.constraints: List[float] = []

    @property
    def bodies(self):
        return self.bodies_function()

    @property
    def integrator_settings(self):
        return self.integrator_settings_function()

    @property
    def propagator_settings(self) -> PropagatorConfiguration:
        return self.propagator_settings_function()

    @property
    def translational_state_propagator_settings(self) -> TranslationalStateSettings:
        return self.translational_state_propagator_settings_function()

    def get_bounds(self) -> Tuple[List[float], List[float]]:
        return list(self.box_bounds[0]), list(self.box_bounds[1])

    def get_nobj(self) -> int:
        return self.reduction.number_of_objectives

    def get_name(self) -> str:
        return f"Lunar ascent ({self.guidance_type.__name__})"

    def get_last_objectives(self) -> List[float]:
        return list(self.objectives)

    def get_last_constraints(self) -> List[float]:
        """Constraints of the last successful evaluation (empty before the first)."""
        return list(self.constraints)

    def get_last_run_propagated_state_history(self) -> dict:
        return self.get_last_run_dynamics_simulator().state_history

    def get_last_run_dependent_variable_history(self) -> dict:
        return self.get_last_run_dynamics_simulator().dependent_variable_history

    def get_last_run_dynamics_simulator(self):
        dynamics_simulator = self.dynamics_simulator_function()
        if dynamics_simulator is None:
            raise LunarAscentError("No successful propagation has been run yet")
        return dynamics_simulator

    def fitness(self, decision_variables: Sequence[float]) -> List[float]:
        """
        Propagate the trajectory with the thrust parameters given as argument.

        Parameters
        ----------
        decision_variables : list of floats
            Thrust parameters, see the guidance type for their meaning.

        Returns
        -------
        objectives : list of floats
            One value per objective; the constraints are kept and can be read
            with ``get_last_constraints``.

        Raises
        ------
        InvalidParameterization
            If the decision variables do not fit the guidance; nothing is
            modified in that case.
        PropagationFailed
            If the propagation did not produce a complete trajectory.
        ConcurrentEvaluationError
            If another evaluation is using the same acceleration settings.
        """
        self.state = EvaluationState.IDLE
        acceleration_table = self.translational_state_propagator_settings.acceleration_table
        try:
            with acceleration_table.checkout():
                self.state = EvaluationState.CONFIGURING
                # Retrieve new acceleration model for thrust, validating the decision variables
                thrust_settings = get_thrust_acceleration_model_from_parameters(
                    decision_variables,
                    self.bodies,
                    self.propagator_settings.initial_time,
                    self.constant_specific_impulse,
                    self.guidance_type,
                    self.vehicle_name,
                    self.central_body_name)
                splice_thrust_acceleration(self.translational_state_propagator_settings,
                                           self.propagator_settings,
                                           self.vehicle_name,
                                           thrust_settings)

                self.state = EvaluationState.PROPAGATING
                logger.debug("Propagating with decision variables %s", thrust_settings.guidance.decision_variables)
                dynamics_simulator = self._propagate()

                self.state = EvaluationState.REDUCING
                self.compute_objectives_and_constraints(dynamics_simulator,
                                                        thrust_settings.guidance.decision_variables)
                self.dynamics_simulator_function = lambda: dynamics_simulator
        except BaseException:
            self.state = EvaluationState.IDLE
            raise

        self.state = EvaluationState.DONE
        logger.debug("Objectives %s, constraints %s", self.objectives, self.constraints)
        return list(self.objectives)

    evaluate = fitness

    def _propagate(self):
        try:
            dynamics_simulator = self.simulator_factory(self.bodies, self.integrator_settings,
                                                        self.propagator_settings)
        except PropagationFailed:
            logger.warning("Propagation failed", exc_info=True)
            raise
        except (RuntimeError, ArithmeticError) as caught:
            logger.warning("Propagation failed: %s", caught)
            raise PropagationFailed(str(caught)) from caught

        # Only a complete and finite trajectory is reduced, whatever the backend
        state_history = dynamics_simulator.state_history
        if not state_history:
            logger.warning("Propagation produced an empty state history")
            raise PropagationFailed("Propagation produced an empty state history")
        _, final_state = final_entry(state_history)
        if not np.all(np.isfinite(final_state)):
            logger.warning("Propagation diverged, final state %s", final_state)
            raise PropagationFailed(f"Propagation diverged, final state {final_state}")
        return dynamics_simulator

    def compute_objectives_and_constraints(self, dynamics_simulator, decision_variables: Sequence[float]) -> None:
        state_history = dynamics_simulator.state_history
        dependent_variable_history = dynamics_simulator.dependent_variable_history

        objectives, constraints = self.reduction(state_history, dependent_variable_history, decision_variables)
        if len(objectives) != self.reduction.number_of_objectives:
            raise ConfigurationError(
                f"Reduction returned {len(objectives)} objectives, "
                f"{self.reduction.number_of_objectives} expected")
        if len(constraints) != self.reduction.number_of_constraints:
            raise ConfigurationError(
                f"Reduction returned {len(constraints)} constraints, "
                f"{self.reduction.number_of_constraints} expected")

        self.objectives = list(objectives)
        self.constraints = list(constraints)
