###########################################################################
# IMPORT STATEMENTS #######################################################
###########################################################################

import numpy as np
from typing import Sequence, Tuple

# Tudatpy imports
import tudatpy
from tudatpy.kernel import constants
from tudatpy.kernel.interface import spice_interface
from tudatpy.kernel.numerical_simulation import propagation_setup
from tudatpy.kernel.numerical_simulation import environment, environment_setup
from tudatpy.kernel.astro import element_conversion

# Problem-specific imports
from lunar_ascent.acceleration_table import AccelerationSettingsTable
from lunar_ascent.problem import LunarAscentProblem
from lunar_ascent.propagator_settings import (MassStateSettings, PropagatorConfiguration,
                                              TranslationalStateSettings, multitype)
from lunar_ascent.reduction import TrajectoryReduction

###########################################################################
# PROPAGATION SETTING UTILITIES ###########################################
###########################################################################

def get_initial_state(
    simulation_start_epoch: float,
    bodies: tudatpy.kernel.numerical_simulation.environment.SystemOfBodies) -> np.ndarray:
    """
    Converts the initial state to inertial coordinates.

    The initial state is expressed in Moon-centered spherical coordinates.
    These are first converted into Moon-centered cartesian coordinates,
    then they are finally converted in the global (inertial) coordinate
    system. The vehicle starts on the lunar surface, moving upwards at
    10 m/s relative to the Moon.

    Parameters
    ----------
    simulation_start_epoch : float
    bodies : tudatpy.kernel.numerical_simulation.environment.SystemOfBodies
        System of bodies present in the simulation.

    Returns
    -------
    initial_state_inertial_coordinates : np.ndarray
        The initial state of the vehicle expressed in inertial coordinates.
    """
    # Set initial spherical elements.
    altitude = 1.0
    radius = spice_interface.get_average_radius('Moon') + altitude
    latitude = np.deg2rad(0.6875)
    longitude = np.deg2rad(23.4333)
    speed = 10.0
    flight_path_angle = np.deg2rad(90.0)
    heading_angle = np.deg2rad(90.0)

    # Convert spherical elements to body-fixed cartesian coordinates
    initial_cartesian_state_body_fixed = element_conversion.spherical_to_cartesian_elementwise(
        radius, latitude,  longitude, speed, flight_path_angle, heading_angle)
    # Get rotational ephemerides of the Moon
    moon_rotational_model = bodies.get_body('Moon').rotation_model
    # Transform the state to the global (inertial) frame
    initial_state_inertial_coordinates = environment.transform_to_inertial_orientation(
        initial_cartesian_state_body_fixed,
        simulation_start_epoch,
        moon_rotational_model)

    return initial_state_inertial_coordinates

def get_termination_settings(
    simulation_start_epoch: float,
    maximum_duration: float,
    termination_altitude: float,
    vehicle_dry_mass: float) \
    -> tudatpy.kernel.numerical_simulation.propagation_setup.propagator.PropagationTerminationSettings:
    """
    Get the termination settings for the simulation.

    Termination settings currently include:
    - simulation time
    - upper altitude boundary (target altitude reached)
    - lower altitude boundary (0 km)
    - vehicle dry mass (propellant depleted)

    Parameters
    ----------
    simulation_start_epoch : float
        Start of the simulation [s] at J2000.
    maximum_duration : float
        Maximum duration of the simulation [s].
    termination_altitude : float
        Maximum altitude [m].
    vehicle_dry_mass : float
        Dry mass of the vehicle [kg].

    Returns
    -------
    hybrid_termination_settings : tudatpy.kernel.numerical_simulation.propagation_setup.propagator.PropagationTerminationSettings
        Propagation termination settings object.
    """
    # Create single PropagationTerminationSettings objects

    # Time
    time_termination_settings = propagation_setup.propagator.time_termination(
        simulation_start_epoch + maximum_duration,
        terminate_exactly_on_final_condition=False)

    # Altitude
    upper_altitude_termination_settings = propagation_setup.propagator.dependent_variable_termination(
        dependent_variable_settings=propagation_setup.dependent_variable.altitude('Vehicle', 'Moon'),
        limit_value=termination_altitude,
        use_as_lower_limit=False,
        terminate_exactly_on_final_condition=False)
    lower_altitude_termination_settings = propagation_setup.propagator.dependent_variable_termination(
        dependent_variable_settings=propagation_setup.dependent_variable.altitude('Vehicle', 'Moon'),
        limit_value=0.0,
        use_as_lower_limit=True,
        terminate_exactly_on_final_condition=False)

    # Vehicle mass
    mass_termination_settings = propagation_setup.propagator.dependent_variable_termination(
        dependent_variable_settings=propagation_setup.dependent_variable.body_mass('Vehicle'),
        limit_value=vehicle_dry_mass,
        use_as_lower_limit=True,
        terminate_exactly_on_final_condition=False)

    # Define list of termination settings
    termination_settings_list = [time_termination_settings,
                                 upper_altitude_termination_settings,
                                 lower_altitude_termination_settings,
                                 mass_termination_settings]

    # Create termination settings object
    hybrid_termination_settings = propagation_setup.propagator.hybrid_termination(termination_settings_list,
                                                                                  fulfill_single_condition=True)
    return hybrid_termination_settings

def get_dependent_variable_save_settings() \
 -> list:
    """
    Retrieves the dependent variables to save.

    The order of the list matches the columns of the dependent variable
    history, see ``DEPENDENT_VARIABLE_NAMES``.

    Returns
    -------
    dependent_variables_to_save : list[tudatpy.numerical_simulation.propagation_setup.dependent_variable]
        List of dependent variables to save.
    """

    dependent_variables_to_save = [
        propagation_setup.dependent_variable.altitude('Vehicle', 'Moon'),
        propagation_setup.dependent_variable.relative_speed('Vehicle', 'Moon'),
        propagation_setup.dependent_variable.flight_path_angle('Vehicle', 'Moon'),
        propagation_setup.dependent_variable.body_mass('Vehicle'),
        propagation_setup.dependent_variable.single_acceleration_norm(
            propagation_setup.acceleration.thrust_acceleration_type, 'Vehicle', 'Vehicle'),
    ]

    return dependent_variables_to_save

# Names of the dependent variables, in the order in which they are saved
DEPENDENT_VARIABLE_NAMES = ('altitude', 'relative_speed', 'flight_path_angle', 'body_mass', 'thrust_acceleration')

def get_integrator_settings(
    integrator_index: int,
    settings_index: int,
    ) \
        -> tudatpy.kernel.numerical_simulation.propagation_setup.integrator.IntegratorSettings:
    """

    Integrator settings to be provided to the dynamics simulator.

    It selects a combination of integrator to be used and
    the related setting (tolerance for variable step size integrators).

    Parameters
    ----------
    integrator_index : int
        Index that selects the integrator type.
    settings_index : int
        Index that selects the tolerance or the step size.

    Returns
    -------
    integrator_settings : tudatpy.numerical_simulation.propagation_setup.integrator.IntegratorSettings

    """
    # Define list of multi-stage integrators
    multi_stage_integrators = [propagation_setup.integrator.CoefficientSets.rkf_45,
                               propagation_setup.integrator.CoefficientSets.rkf_56,
                               propagation_setup.integrator.CoefficientSets.rkf_78,
                               propagation_setup.integrator.CoefficientSets.rkdp_87]

    # Select variable-step integrator
    current_coefficient_set = multi_stage_integrators[integrator_index]
    # Compute current tolerance
    current_tolerance = 10.0 ** (-10.0 + settings_index)
    # Create integrator settings
    blockwise_control_settings = (
        propagation_setup.integrator.step_size_control_blockwise_scalar_tolerance(
            propagation_setup.integrator.standard_cartesian_state_element_blocks(6, 1),
            current_tolerance,
            current_tolerance
        ))

    step_size_validation_settings = propagation_setup.integrator.step_size_validation(
        minimum_step=1.0E-4,
        maximum_step=60.0,
    )

    integrator_settings = propagation_setup.integrator.runge_kutta_variable_step(
        initial_time_step=1.0,
        coefficient_set=current_coefficient_set,
        step_size_control_settings=blockwise_control_settings,
        step_size_validation_settings=step_size_validation_settings
    )

    return integrator_settings

def get_propagator_settings(
        bodies,
        simulation_start_epoch,
        vehicle_initial_mass,
        termination_settings,
        dependent_variables_to_save,
        current_propagator: str = 'cowell') -> PropagatorConfiguration:
    """
    Create the multi-type propagator configuration of the lunar ascent.

    This function sets up the translational dynamics (lunar gravity and
    third-body perturbations) as well as the mass of the vehicle, which is
    coupled to its engine. The thrust is not part of the initial
    accelerations: it is set by ``LunarAscentProblem.fitness`` from the
    decision variables.

    Parameters
    ----------
    bodies : tudatpy.numerical_simulation.environment.SystemOfBodies
        The system of bodies, including the Moon, Earth and Sun.

    simulation_start_epoch : float
        Initial epoch of the simulation, expressed in seconds since J2000.

    vehicle_initial_mass : float
        Initial (wet) mass of the vehicle [kg].

    termination_settings : tudatpy.numerical_simulation.propagation_setup.propagator.TerminationSettings
        Settings that specify the stopping conditions of the propagation.

    dependent_variables_to_save : list of tudatpy.numerical_simulation.propagation_setup.dependent_variable_save_settings
        List of dependent variables to be saved during propagation.

    current_propagator : str, optional
        Name of the translational propagator (default is Cowell's method).

    Returns
    -------
    PropagatorConfiguration
        Configuration holding translational and mass state settings.

    Notes
    -----
    - Translational accelerations include:
        * Spherical harmonic gravity up to degree/order 2 for the Moon.
        * Point-mass gravity from the Earth and the Sun.
    """

    # Define bodies that are propagated and their central bodies of propagation
    bodies_to_propagate = ['Vehicle']
    central_bodies = ['Moon']

    # Define accelerations acting on vehicle
    acceleration_settings_on_vehicle = {
        'Vehicle': [],
        'Moon': [propagation_setup.acceleration.spherical_harmonic_gravity(2, 2)],
        'Earth': [propagation_setup.acceleration.point_mass_gravity()],
        'Sun': [propagation_setup.acceleration.point_mass_gravity()],
    }
    acceleration_table = AccelerationSettingsTable({'Vehicle': acceleration_settings_on_vehicle})

    # Retrieve initial state
    initial_state = get_initial_state(simulation_start_epoch, bodies)

    translational_state_settings = TranslationalStateSettings(
        central_bodies,
        bodies_to_propagate,
        acceleration_table,
        initial_state,
        current_propagator)
    mass_state_settings = MassStateSettings(
        bodies_to_propagate,
        np.array([vehicle_initial_mass]))

    return multitype([translational_state_settings, mass_state_settings],
                     simulation_start_epoch,
                     termination_settings,
                     dependent_variables_to_save)

def lunar_ascent_problem(
    decision_variable_range: Sequence[Tuple[float, float]],
    bodies_to_create: Sequence[str] = ('Moon', 'Earth', 'Sun'),
    global_frame_origin: str = 'Moon',
    global_frame_orientation: str = 'ECLIPJ2000',
    integrator_index: int = 0,
    settings_index: int = 0,
    *,
    simulation_start_epoch: float,
    vehicle_mass: float,
    vehicle_dry_mass: float,
    constant_specific_impulse: float,
    maximum_duration: float = constants.JULIAN_DAY,
    termination_altitude: float = 100.0E3,
    reduction: TrajectoryReduction = None,
) -> LunarAscentProblem:
    """
    Build the environment, settings and problem of a lunar ascent.

    Parameters
    ----------
    decision_variable_range : list of (float, float)
        Minimum and maximum of each thrust parameter.
    bodies_to_create : Sequence[str], optional
        Celestial bodies to include in the environment model.
    global_frame_origin : str, optional
        Name of the global frame origin. Default is 'Moon'.
    global_frame_orientation : str, optional
        Orientation of the global frame. Default is 'ECLIPJ2000'.
    integrator_index : int, optional
        Selector passed to ``get_integrator_settings`` to choose the
        integrator coefficient set.
    settings_index : int, optional
        Selector passed to ``get_integrator_settings`` to choose the
        tolerance.
    simulation_start_epoch : float (required, keyword-only)
        Start epoch of the propagation [s since J2000].
    vehicle_mass : float (required, keyword-only)
        Initial mass of the vehicle [kg].
    vehicle_dry_mass : float (required, keyword-only)
        Mass at which the propellant is depleted [kg].
    constant_specific_impulse : float (required, keyword-only)
        Specific impulse of the engine [s].
    maximum_duration : float, optional
        Maximum simulation duration [s]. Default is one Julian day.
    termination_altitude : float, optional
        Altitude at which the ascent ends [m]. Default is 100 km.
    reduction : TrajectoryReduction, optional
        Objectives and constraints of the problem.

    Returns
    -------
    LunarAscentProblem
    """

    # ----- ENVIRONMENT -------------------------------------------------------
    body_settings = environment_setup.get_default_body_settings(
        list(bodies_to_create), global_frame_origin, global_frame_orientation)
    bodies = environment_setup.create_system_of_bodies(body_settings)

    # Vehicle
    bodies.create_empty_body('Vehicle')
    bodies.get_body('Vehicle').mass = vehicle_mass

    # ----- PROPAGATION SETUP -------------------------------------------------
    termination_settings = get_termination_settings(
        simulation_start_epoch,
        maximum_duration,
        termination_altitude,
        vehicle_dry_mass
    )
    dependent_variables_to_save = get_dependent_variable_save_settings()
    propagator_settings = get_propagator_settings(
        bodies,
        simulation_start_epoch,
        vehicle_mass,
        termination_settings,
        dependent_variables_to_save
    )
    integrator_settings = get_integrator_settings(integrator_index, settings_index)

    # ----- PROBLEM -----------------------------------------------------------
    return LunarAscentProblem(bodies,
                              integrator_settings,
                              propagator_settings,
                              decision_variable_range,
                              constant_specific_impulse,
                              reduction=reduction)

def termination_reason(dynamics_simulator) -> str:
    """
    Classify why the propagation of a lunar ascent stopped.

    Parameters
    ----------
    dynamics_simulator : tudatpy.kernel.numerical_simulation.SingleArcSimulator
        Simulator of the last run.

    Returns
    -------
    str
        "time_limit" | "target_altitude" | "surface_impact" | "propellant_depleted" | "unknown"
    """
    term = dynamics_simulator.propagation_termination_details.was_condition_met_when_stopping
    reasons = ("time_limit", "target_altitude", "surface_impact", "propellant_depleted")
    if isinstance(term, (list, tuple)) and len(term) >= len(reasons):
        for reason, met in zip(reasons, term):
            if met:
                return reason
    return "unknown"
