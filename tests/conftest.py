"""
===============================================================================
LUNAR ASCENT - Shared test fixtures
===============================================================================
A stand-in for the Tudat environment: bodies exposing a position, and a
simulator factory that integrates the spliced thrust with a fixed-step
Euler scheme in a point-mass lunar gravity field. It is deterministic and
reads the acceleration settings table exactly like the Tudat backend does.
===============================================================================
"""

import numpy as np
import pytest

from lunar_ascent.acceleration_table import AccelerationSettingsTable
from lunar_ascent.guidance import ThrustAccelerationSettings
from lunar_ascent.propagator_settings import MassStateSettings, TranslationalStateSettings, multitype

MOON_RADIUS = 1737.4E3
MOON_MU = 4.9028E12
STANDARD_GRAVITY = 9.80665


# =============================================================================
# Fake environment
# =============================================================================

class FakeBody:
    """Body with a current position and orientation, like a Tudat Body during propagation."""

    def __init__(self, position, mass=0.0, body_fixed_to_inertial_frame=None):
        self.position = np.asarray(position, dtype=float)
        self.mass = mass
        if body_fixed_to_inertial_frame is None:
            body_fixed_to_inertial_frame = np.eye(3)
        self.body_fixed_to_inertial_frame = np.asarray(body_fixed_to_inertial_frame, dtype=float)


class FakeBodies:
    def __init__(self, **bodies):
        self.bodies = bodies

    def get_body(self, name):
        return self.bodies[name]


class FakeDynamicsSimulator:
    def __init__(self, state_history, dependent_variable_history):
        self.state_history = state_history
        self.dependent_variable_history = dependent_variable_history


class FakeSimulatorFactory:
    """
    Propagates the vehicle for ``number_of_steps`` steps of ``step_size``.

    State: position, velocity, mass. Dependent variables: altitude, speed,
    thrust magnitude.
    """

    def __init__(self, step_size=1.0, number_of_steps=60, error=None, diverge=False):
        self.step_size = step_size
        self.number_of_steps = number_of_steps
        self.error = error
        self.diverge = diverge
        self.number_of_calls = 0
        self.rebuilds = 0

    def __call__(self, bodies, integrator_settings, propagator_settings):
        self.number_of_calls += 1
        if self.error is not None:
            raise self.error
        if propagator_settings.derived_models is None:
            self.rebuilds += 1
            propagator_settings.derived_models = ("built", propagator_settings.version)

        translational_settings = propagator_settings.translational_state_settings()
        vehicle_name = translational_settings.bodies_to_propagate[0]
        vehicle = bodies.get_body(vehicle_name)
        thrusts = [acceleration
                   for acceleration in translational_settings.acceleration_table.self_exerted(vehicle_name)
                   if isinstance(acceleration, ThrustAccelerationSettings)]

        time = propagator_settings.initial_time
        state = np.asarray(translational_settings.initial_state, dtype=float).copy()
        mass = float(propagator_settings.mass_state_settings()[0].initial_masses[0])
        state_history, dependent_variable_history = {}, {}
        for step in range(self.number_of_steps + 1):
            vehicle.position = state[:3].copy()
            radius = np.linalg.norm(state[:3])
            acceleration = -MOON_MU * state[:3] / radius ** 3
            thrust_magnitude = 0.0
            mass_rate = 0.0
            for thrust in thrusts:
                magnitude = thrust.magnitude(time)
                acceleration = acceleration + magnitude / mass * thrust.direction(time)
                thrust_magnitude += magnitude
                mass_rate -= magnitude / (thrust.specific_impulse_function(time) * STANDARD_GRAVITY)

            state_history[time] = np.concatenate((state, [mass]))
            dependent_variable_history[time] = np.array(
                [radius - MOON_RADIUS, np.linalg.norm(state[3:]), thrust_magnitude])
            if step == self.number_of_steps:
                break

            state = np.concatenate((state[:3] + self.step_size * state[3:],
                                    state[3:] + self.step_size * acceleration))
            mass = mass + self.step_size * mass_rate
            time = time + self.step_size

        if self.diverge:
            state_history[time] = np.full(7, np.nan)
        return FakeDynamicsSimulator(state_history, dependent_variable_history)


# =============================================================================
# Fixtures
# =============================================================================

def make_propagator_settings(initial_time=0.0, gravity=("moon_point_mass",)):
    """Configuration of a vehicle starting 1 m above the lunar surface."""
    acceleration_table = AccelerationSettingsTable({
        "Vehicle": {"Vehicle": [], "Moon": list(gravity)}})
    initial_state = np.array([MOON_RADIUS + 1.0, 0.0, 0.0, 10.0, 0.0, 0.0])
    translational = TranslationalStateSettings(["Moon"], ["Vehicle"], acceleration_table, initial_state)
    mass = MassStateSettings(["Vehicle"], np.array([4.7E3]))
    return multitype([translational, mass], initial_time)


@pytest.fixture
def vehicle():
    return FakeBody([MOON_RADIUS + 1.0, 0.0, 0.0], mass=4.7E3)


@pytest.fixture
def bodies(vehicle):
    return FakeBodies(Vehicle=vehicle, Moon=FakeBody([0.0, 0.0, 0.0]))


@pytest.fixture
def propagator_settings():
    return make_propagator_settings()


@pytest.fixture
def simulator_factory():
    return FakeSimulatorFactory()
