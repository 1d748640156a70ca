###########################################################################
# IMPORT STATEMENTS #######################################################
###########################################################################

import math
from dataclasses import dataclass, field
from typing import Protocol, Sequence, Tuple, Type

import numpy as np

# Problem-specific imports
from lunar_ascent.exceptions import ConfigurationError, InvalidParameterization
from lunar_ascent.frames import vertical_to_inertial_rotation

###########################################################################
# TIME-VARYING INTERFACES #################################################
###########################################################################


class TimeVaryingVector3(Protocol):
    def __call__(self, time: float) -> np.ndarray:
        ...


class TimeVaryingScalar(Protocol):
    def __call__(self, time: float) -> float:
        ...

###########################################################################
# THRUST GUIDANCE #########################################################
###########################################################################


class ThrustGuidance:
    """
    Thrust direction and magnitude derived from a vector of decision variables.

    The thrust direction is given by a single angle theta, measured between
    the -z (up) and y (east) axes of the vehicle's vertical frame. Subclasses
    define how theta and the thrust magnitude follow from the decision
    variables; the guidance itself only holds the vehicle body, the initial
    epoch and the decision variables, so that two guidance objects built from
    the same inputs always return the same thrust profile.

    Attributes
    ----------
    vehicle_body
        Body of the vehicle; only its current ``position`` is read.
    central_body
        Body the vertical frame is attached to, or None for the global
        frame origin. Its ``position`` and the spin axis of its
        ``body_fixed_to_inertial_frame`` rotation are read.
    initial_time : float
        Reference epoch of the thrust profile [s].
    decision_variables : tuple of floats
        Copy of the decision variables the guidance was built from.
    """

    number_of_parameters: int = 0

    def __init__(self,
                 vehicle_body,
                 initial_time: float,
                 decision_variables: Sequence[float],
                 central_body=None):
        self.vehicle_body = vehicle_body
        self.central_body = central_body
        self.initial_time = float(initial_time)
        self.decision_variables = self.validate_decision_variables(decision_variables)

    @classmethod
    def validate_decision_variables(cls, decision_variables: Sequence[float]) -> Tuple[float, ...]:
        """
        Check the decision variables against this parameterization.

        Raises
        ------
        InvalidParameterization
            If the length is wrong, an entry is not finite, or the thrust
            magnitude is negative.
        """
        try:
            values = tuple(float(value) for value in decision_variables)
        except (TypeError, ValueError) as caught:
            raise InvalidParameterization(
                f"Decision variables must be a sequence of reals, got {decision_variables!r}") from caught

        if len(values) != cls.number_of_parameters:
            raise InvalidParameterization(
                f"{cls.__name__} expects {cls.number_of_parameters} decision variables, got {len(values)}")
        if not all(math.isfinite(value) for value in values):
            raise InvalidParameterization(f"Decision variables must be finite, got {values}")
        if values[0] < 0.0:
            raise InvalidParameterization(f"Thrust magnitude must be non-negative, got {values[0]}")
        return values

    @property
    def thrust_magnitude(self) -> float:
        return self.decision_variables[0]

    def get_current_thrust_angle(self, time: float) -> float:
        raise NotImplementedError

    def get_current_thrust_magnitude(self, time: float) -> float:
        return self.thrust_magnitude

    def get_current_thrust_direction(self, time: float) -> np.ndarray:
        # The propagator resets its models by calling with a NaN time
        if time != time:
            time = self.initial_time
        thrust_angle = self.get_current_thrust_angle(time)
        thrust_direction_vertical_frame = np.array(
            [0.0, np.sin(thrust_angle), -np.cos(thrust_angle)])
        vertical_to_inertial_frame = self.get_current_vertical_to_inertial_rotation()
        return vertical_to_inertial_frame @ thrust_direction_vertical_frame

    def get_current_vertical_to_inertial_rotation(self) -> np.ndarray:
        if self.central_body is None:
            return vertical_to_inertial_rotation(self.vehicle_body.position)
        relative_position = np.asarray(self.vehicle_body.position) - np.asarray(self.central_body.position)
        rotation_axis = np.asarray(self.central_body.body_fixed_to_inertial_frame)[:, 2]
        return vertical_to_inertial_rotation(relative_position, rotation_axis)

    def thrust_direction_function(self) -> TimeVaryingVector3:
        return ThrustDirectionFunction(self)

    def thrust_magnitude_function(self) -> TimeVaryingScalar:
        return ThrustMagnitudeFunction(self)


class ConstantAngleThrustGuidance(ThrustGuidance):
    """
    Constant thrust magnitude and constant thrust angle.

    Decision variables: ``[thrust magnitude [N], thrust angle [rad]]``.
    """

    number_of_parameters = 2

    def get_current_thrust_angle(self, time: float) -> float:
        return self.decision_variables[1]


class NodalThrustGuidance(ThrustGuidance):
    """
    Constant thrust magnitude, thrust angle interpolated between time nodes.

    The thrust angle is defined on a set of nodes spread evenly in time,
    starting at the initial epoch. Between the nodes the angle is linearly
    interpolated; before the first and after the last node the boundary value
    is used.

    Decision variables:

    - Entry 0: constant thrust magnitude [N]
    - Entry 1: constant spacing in time between nodes [s]
    - Entry 2 onwards: thrust angle theta at each node, in order [rad]
    """

    number_of_nodes: int = 5
    number_of_parameters: int = number_of_nodes + 2

    def __init__(self,
                 vehicle_body,
                 initial_time: float,
                 decision_variables: Sequence[float],
                 central_body=None):
        super().__init__(vehicle_body, initial_time, decision_variables, central_body)
        node_spacing = self.decision_variables[1]
        self.node_times = self.initial_time + node_spacing * np.arange(self.number_of_nodes)
        self.node_angles = np.array(self.decision_variables[2:])

    @classmethod
    def validate_decision_variables(cls, decision_variables: Sequence[float]) -> Tuple[float, ...]:
        values = super().validate_decision_variables(decision_variables)
        if values[1] <= 0.0:
            raise InvalidParameterization(f"Node spacing must be positive, got {values[1]}")
        return values

    @classmethod
    def with_nodes(cls, number_of_nodes: int) -> Type["NodalThrustGuidance"]:
        """Nodal guidance type for a given number of thrust angle nodes."""
        if number_of_nodes < 1:
            raise ConfigurationError(f"At least one thrust node is needed, got {number_of_nodes}")
        if number_of_nodes == cls.number_of_nodes:
            return cls
        return type(f"NodalThrustGuidance{number_of_nodes}",
                    (NodalThrustGuidance,),
                    {"number_of_nodes": number_of_nodes,
                     "number_of_parameters": number_of_nodes + 2})

    def get_current_thrust_angle(self, time: float) -> float:
        return float(np.interp(time, self.node_times, self.node_angles))


def select_thrust_guidance(number_of_parameters: int) -> Type[ThrustGuidance]:
    """
    Guidance parameterization matching a number of decision variables.

    Two variables give a constant thrust angle; three or more give a nodal
    profile with one node per variable after the magnitude and spacing.
    """
    if number_of_parameters == ConstantAngleThrustGuidance.number_of_parameters:
        return ConstantAngleThrustGuidance
    if number_of_parameters >= 3:
        return NodalThrustGuidance.with_nodes(number_of_parameters - 2)
    raise ConfigurationError(
        f"No thrust guidance uses {number_of_parameters} decision variables")


class ThrustDirectionFunction:
    """Thrust direction of a guidance, as a function of time."""

    def __init__(self, guidance: ThrustGuidance):
        self.guidance = guidance

    def __call__(self, time: float) -> np.ndarray:
        return self.guidance.get_current_thrust_direction(time)


class ThrustMagnitudeFunction:
    """Thrust magnitude of a guidance, as a function of time."""

    def __init__(self, guidance: ThrustGuidance):
        self.guidance = guidance

    def __call__(self, time: float) -> float:
        return self.guidance.get_current_thrust_magnitude(time)

###########################################################################
# THRUST ACCELERATION SETTINGS ############################################
###########################################################################


@dataclass
class ThrustAccelerationSettings:
    """
    Self-exerted thrust acceleration of a vehicle.

    Pairs a direction function and a magnitude function of time with a
    constant specific impulse. The propagation backend turns it into the
    engine and rotation models of the vehicle.
    """

    direction: TimeVaryingVector3
    magnitude: TimeVaryingScalar
    constant_specific_impulse: float
    engine_name: str = "MainEngine"
    guidance: ThrustGuidance = field(default=None, repr=False)

    def specific_impulse_function(self, time: float) -> float:
        return self.constant_specific_impulse


def get_thrust_acceleration_model_from_parameters(
        decision_variables: Sequence[float],
        bodies,
        initial_time: float,
        constant_specific_impulse: float,
        guidance_type: Type[ThrustGuidance] = None,
        vehicle_name: str = "Vehicle",
        central_body_name: str = None) -> ThrustAccelerationSettings:
    """
    Creates the thrust acceleration settings from the thrust parameters.

    Parameters
    ----------
    decision_variables : list of floats
        Thrust parameters, see the guidance classes for their meaning.
    bodies : tudatpy.kernel.numerical_simulation.environment.SystemOfBodies
        System of bodies present in the simulation.
    initial_time : float
        The start time of the simulation [s].
    constant_specific_impulse : float
        Constant specific impulse of the vehicle [s].
    guidance_type : type, optional
        Guidance parameterization; selected from the number of decision
        variables if not given.
    vehicle_name : str, optional
        Name of the thrusting body (default "Vehicle").
    central_body_name : str, optional
        Body the thrust angle is measured against; the global frame origin
        and the inertial z-axis are used if not given.

    Returns
    -------
    ThrustAccelerationSettings
        Thrust acceleration settings object.
    """
    if guidance_type is None:
        try:
            guidance_type = select_thrust_guidance(len(decision_variables))
        except ConfigurationError as caught:
            raise InvalidParameterization(str(caught)) from caught

    # Define thrust functions
    central_body = bodies.get_body(central_body_name) if central_body_name is not None else None
    thrust_guidance = guidance_type(bodies.get_body(vehicle_name), initial_time, decision_variables, central_body)

    return ThrustAccelerationSettings(
        direction=thrust_guidance.thrust_direction_function(),
        magnitude=thrust_guidance.thrust_magnitude_function(),
        constant_specific_impulse=constant_specific_impulse,
        guidance=thrust_guidance)
