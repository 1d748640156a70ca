"""Thrust-profile optimization of a lunar ascent vehicle, propagated with Tudat."""

from lunar_ascent.acceleration_table import AccelerationSettingsTable
from lunar_ascent.exceptions import (ConcurrentEvaluationError, ConfigurationError, InvalidParameterization,
                                     LunarAscentError, PropagationFailed)
from lunar_ascent.guidance import (ConstantAngleThrustGuidance, NodalThrustGuidance, ThrustAccelerationSettings,
                                   ThrustGuidance, get_thrust_acceleration_model_from_parameters,
                                   select_thrust_guidance)
from lunar_ascent.problem import EvaluationState, LunarAscentProblem, splice_thrust_acceleration
from lunar_ascent.propagator_settings import (MassStateSettings, PropagatorConfiguration, StateType,
                                              TranslationalStateSettings, multitype)
from lunar_ascent.reduction import (FunctionReduction, PlaceholderReduction, TrajectoryReduction,
                                    final_entry, history_to_array)

__version__ = "0.1.0"
