###########################################################################
# IMPORT STATEMENTS #######################################################
###########################################################################

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

import numpy as np

# Problem-specific imports
from lunar_ascent.acceleration_table import AccelerationSettingsTable
from lunar_ascent.exceptions import ConfigurationError

###########################################################################
# PROPAGATOR CONFIGURATION ################################################
###########################################################################


class StateType(enum.Enum):
    translational = "translational"
    mass = "mass"


@dataclass
class TranslationalStateSettings:
    """Translational dynamics of the propagated bodies."""

    central_bodies: List[str]
    bodies_to_propagate: List[str]
    acceleration_table: AccelerationSettingsTable
    initial_state: np.ndarray
    propagator: str = "cowell"

    def reset_acceleration_settings(self, acceleration_table: AccelerationSettingsTable) -> None:
        self.acceleration_table = acceleration_table


@dataclass
class MassStateSettings:
    """Mass of the propagated bodies; ``from_thrust`` couples it to the engines."""

    bodies_to_propagate: List[str]
    initial_masses: np.ndarray
    mass_rate_settings: str = "from_thrust"


@dataclass
class PropagatorConfiguration:
    """
    Multi-type propagator configuration, independent of the propagation backend.

    Attributes
    ----------
    state_settings : dict
        Sub-configurations per state type, in propagation order.
    initial_time : float
        Start epoch of the propagation [s].
    termination_settings
        Backend termination settings, passed through unchanged.
    dependent_variables_to_save : list
        Backend dependent variable settings, passed through unchanged.
    version : int
        Incremented whenever the integrated state models must be rebuilt.
    derived_models
        Backend objects built from this configuration; ``None`` when stale.
    """

    state_settings: Dict[StateType, List[Any]]
    initial_time: float = 0.0
    termination_settings: Any = None
    dependent_variables_to_save: Sequence[Any] = ()
    version: int = 0
    derived_models: Any = field(default=None, repr=False)

    def translational_state_settings(self) -> TranslationalStateSettings:
        """
        First translational sub-configuration.

        Raises
        ------
        ConfigurationError
            If there is none, or it is not translational state settings.
        """
        translational_settings = self.state_settings.get(StateType.translational) or []
        if not translational_settings:
            raise ConfigurationError("Propagator settings contain no translational state settings")
        if not isinstance(translational_settings[0], TranslationalStateSettings):
            raise ConfigurationError(
                f"Expected translational state settings, got {type(translational_settings[0]).__name__}")
        return translational_settings[0]

    def mass_state_settings(self) -> List[MassStateSettings]:
        return list(self.state_settings.get(StateType.mass) or [])

    def reset_integrated_state_models(self) -> None:
        self.version += 1
        self.derived_models = None


def multitype(propagator_settings_list: Sequence[Any],
              initial_time: float,
              termination_settings=None,
              dependent_variables_to_save: Sequence[Any] = ()) -> PropagatorConfiguration:
    """Group sub-configurations by state type into a single configuration."""
    state_settings: Dict[StateType, List[Any]] = {}
    for settings in propagator_settings_list:
        if isinstance(settings, TranslationalStateSettings):
            state_settings.setdefault(StateType.translational, []).append(settings)
        elif isinstance(settings, MassStateSettings):
            state_settings.setdefault(StateType.mass, []).append(settings)
        else:
            raise ConfigurationError(f"Unknown propagator settings {settings!r}")
    return PropagatorConfiguration(state_settings,
                                   initial_time,
                                   termination_settings,
                                   list(dependent_variables_to_save))
