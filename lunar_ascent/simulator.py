###########################################################################
# IMPORT STATEMENTS #######################################################
###########################################################################

import logging
from typing import Any, Dict, List

import numpy as np

# Tudatpy imports
from tudatpy.kernel import numerical_simulation
from tudatpy.kernel.numerical_simulation import environment_setup
from tudatpy.kernel.numerical_simulation import propagation_setup

# Problem-specific imports
from lunar_ascent.acceleration_table import AccelerationSettingsTable
from lunar_ascent.exceptions import ConfigurationError, PropagationFailed
from lunar_ascent.guidance import ThrustAccelerationSettings
from lunar_ascent.propagator_settings import MassStateSettings, PropagatorConfiguration

logger = logging.getLogger(__name__)

###########################################################################
# THRUST MODEL SETTING UTILITIES ##########################################
###########################################################################


def set_thrust_models(bodies,
                      body_name: str,
                      thrust_settings: ThrustAccelerationSettings):
    """
    Installs the engine and rotation model of a thrusting body.

    The body is oriented such that its x-axis follows the thrust direction,
    and an engine with the thrust magnitude and specific impulse functions is
    (re)added to it.

    Parameters
    ----------
    bodies : tudatpy.kernel.numerical_simulation.environment.SystemOfBodies
        System of bodies present in the simulation.
    body_name : str
        Name of the thrusting body.
    thrust_settings : ThrustAccelerationSettings
        Thrust direction, magnitude and specific impulse.

    Returns
    -------
    tudatpy.kernel.numerical_simulation.propagation_setup.acceleration.AccelerationSettings
        Thrust acceleration settings using the new engine.
    """
    direction = thrust_settings.direction

    rotation_model_settings = environment_setup.rotation_model.custom_inertial_direction_based(
        lambda time: np.reshape(direction(time), (3, 1)),
        bodies.global_frame_orientation,
        body_name + "Fixed")
    environment_setup.add_rotation_model(bodies, body_name, rotation_model_settings)

    thrust_magnitude_settings = propagation_setup.thrust.custom_thrust_magnitude(
        thrust_settings.magnitude,
        thrust_settings.specific_impulse_function)
    environment_setup.add_engine_model(
        body_name, thrust_settings.engine_name, thrust_magnitude_settings, bodies)

    return propagation_setup.acceleration.thrust_from_engine(thrust_settings.engine_name)


def get_acceleration_settings(bodies,
                              acceleration_table: AccelerationSettingsTable) -> Dict[str, Dict[str, List[Any]]]:
    """Tudat acceleration settings dictionary, with thrust settings turned into engine models."""
    acceleration_settings = acceleration_table.as_dict()
    for undergoing, settings_on_body in acceleration_settings.items():
        for exerting, settings in settings_on_body.items():
            settings_on_body[exerting] = [
                set_thrust_models(bodies, undergoing, acceleration)
                if isinstance(acceleration, ThrustAccelerationSettings) else acceleration
                for acceleration in settings]
    return acceleration_settings

###########################################################################
# PROPAGATOR SETTING UTILITIES ############################################
###########################################################################


def create_propagator_settings(bodies,
                               integrator_settings,
                               propagator_settings: PropagatorConfiguration):
    """
    Creates the Tudat multi-type propagator settings from a configuration.

    Parameters
    ----------
    bodies : tudatpy.kernel.numerical_simulation.environment.SystemOfBodies
        System of bodies present in the simulation.
    integrator_settings : tudatpy.kernel.numerical_simulation.propagation_setup.integrator.IntegratorSettings
        Integrator settings attached to the propagator settings.
    propagator_settings : PropagatorConfiguration
        Translational and mass state settings, termination settings and
        dependent variables to save.

    Returns
    -------
    tudatpy.kernel.numerical_simulation.propagation_setup.propagator.MultiTypePropagatorSettings
    """
    initial_time = propagator_settings.initial_time
    termination_settings = propagator_settings.termination_settings
    dependent_variables_to_save = list(propagator_settings.dependent_variables_to_save)

    translational_settings = propagator_settings.translational_state_settings()
    acceleration_models = propagation_setup.create_acceleration_models(
        bodies,
        get_acceleration_settings(bodies, translational_settings.acceleration_table),
        translational_settings.bodies_to_propagate,
        translational_settings.central_bodies)

    # Create propagation settings for the translational dynamics
    translational_propagator_settings = propagation_setup.propagator.translational(
        translational_settings.central_bodies,
        acceleration_models,
        translational_settings.bodies_to_propagate,
        np.asarray(translational_settings.initial_state, dtype=float),
        initial_time,
        None,
        termination_settings,
        getattr(propagation_setup.propagator, translational_settings.propagator),
        dependent_variables_to_save)
    propagator_settings_list = [translational_propagator_settings]

    for mass_settings in propagator_settings.mass_state_settings():
        propagator_settings_list.append(get_mass_propagator_settings(
            bodies, mass_settings, acceleration_models, initial_time, termination_settings))

    # Create multi-type propagation settings object for translational dynamics and mass
    multitype_propagator_settings = propagation_setup.propagator.multitype(
        propagator_settings_list,
        None,
        initial_time,
        termination_settings,
        dependent_variables_to_save)
    multitype_propagator_settings.integrator_settings = integrator_settings

    return multitype_propagator_settings


def get_mass_propagator_settings(bodies,
                                 mass_settings: MassStateSettings,
                                 acceleration_models,
                                 initial_time: float,
                                 termination_settings):
    if mass_settings.mass_rate_settings != "from_thrust":
        raise ConfigurationError(f"Unsupported mass rate settings {mass_settings.mass_rate_settings!r}")

    # Create mass rate model
    mass_rate_settings = {body_name: [propagation_setup.mass_rate.from_thrust()]
                          for body_name in mass_settings.bodies_to_propagate}
    mass_rate_models = propagation_setup.create_mass_rate_models(bodies,
                                                                 mass_rate_settings,
                                                                 acceleration_models)
    return propagation_setup.propagator.mass(mass_settings.bodies_to_propagate,
                                             mass_rate_models,
                                             np.asarray(mass_settings.initial_masses, dtype=float),
                                             initial_time,
                                             None,
                                             termination_settings)

###########################################################################
# DYNAMICS SIMULATOR ######################################################
###########################################################################


def create_dynamics_simulator(bodies,
                              integrator_settings,
                              propagator_settings: PropagatorConfiguration):
    """
    Runs one full propagation with the current configuration.

    Derived Tudat models are rebuilt when the configuration was reset since
    the last run, and reused otherwise.

    Returns
    -------
    tudatpy.kernel.numerical_simulation.SingleArcSimulator
        Dynamics simulator holding the state and dependent variable histories.

    Raises
    ------
    PropagationFailed
        If Tudat raises or the integration did not complete.
    """
    try:
        if propagator_settings.derived_models is None:
            propagator_settings.derived_models = create_propagator_settings(
                bodies, integrator_settings, propagator_settings)
        dynamics_simulator = numerical_simulation.create_dynamics_simulator(
            bodies, propagator_settings.derived_models)
    except RuntimeError as caught:
        raise PropagationFailed(f"Tudat propagation raised: {caught}") from caught

    if not dynamics_simulator.integration_completed_successfully:
        termination_details = dynamics_simulator.propagation_termination_details
        raise PropagationFailed(
            f"Integration did not complete: {termination_details.termination_reason}")

    logger.debug("Propagation completed with %d epochs", len(dynamics_simulator.state_history))
    return dynamics_simulator
