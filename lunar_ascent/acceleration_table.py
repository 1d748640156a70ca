###########################################################################
# IMPORT STATEMENTS #######################################################
###########################################################################

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Mapping, Sequence

# Problem-specific imports
from lunar_ascent.exceptions import ConcurrentEvaluationError

###########################################################################
# ACCELERATION SETTINGS TABLE #############################################
###########################################################################


class AccelerationSettingsTable:
    """
    Acceleration settings acting on the propagated bodies.

    Same layout as the dictionaries passed to
    ``propagation_setup.create_acceleration_models``::

        {undergoing_body: {exerting_body: [settings, ...]}}

    Every mutation increments ``version``. The table is meant to be owned by
    a single fitness evaluation at a time; ``checkout`` enforces this.
    """

    def __init__(self, acceleration_settings: Mapping[str, Mapping[str, Sequence]] = None):
        self._settings: Dict[str, Dict[str, List]] = {}
        self.version = 0
        self._owner = threading.Lock()
        for undergoing, settings_on_body in (acceleration_settings or {}).items():
            for exerting, settings in settings_on_body.items():
                self._settings.setdefault(undergoing, {})[exerting] = list(settings)

    def __contains__(self, undergoing: str) -> bool:
        return undergoing in self._settings

    def __repr__(self):
        return f"AccelerationSettingsTable(version={self.version}, {self._settings!r})"

    @property
    def bodies_undergoing(self) -> List[str]:
        return list(self._settings)

    def get(self, undergoing: str, exerting: str) -> tuple:
        return tuple(self._settings.get(undergoing, {}).get(exerting, ()))

    def set_accelerations(self, undergoing: str, exerting: str, settings: Sequence) -> None:
        self._settings.setdefault(undergoing, {})[exerting] = list(settings)
        self.version += 1

    def self_exerted(self, body_name: str) -> tuple:
        return self.get(body_name, body_name)

    def replace_self_exerted(self, body_name: str, settings: Sequence) -> None:
        """Clear the accelerations a body exerts on itself, then add ``settings``."""
        self_exerted = self._settings.setdefault(body_name, {}).setdefault(body_name, [])
        self_exerted.clear()
        self_exerted.extend(settings)
        self.version += 1

    def as_dict(self) -> Dict[str, Dict[str, List]]:
        return {undergoing: {exerting: list(settings) for exerting, settings in settings_on_body.items()}
                for undergoing, settings_on_body in self._settings.items()}

    def copy(self) -> "AccelerationSettingsTable":
        """Independent table, e.g. for an evaluation running in parallel."""
        table = AccelerationSettingsTable(self._settings)
        table.version = self.version
        return table

    @property
    def checked_out(self) -> bool:
        return self._owner.locked()

    @contextmanager
    def checkout(self) -> Iterator["AccelerationSettingsTable"]:
        """
        Exclusive ownership of the table for the duration of one evaluation.

        Raises
        ------
        ConcurrentEvaluationError
            If another evaluation already owns the table.
        """
        if not self._owner.acquire(blocking=False):
            raise ConcurrentEvaluationError(
                "Acceleration settings are owned by another evaluation; "
                "give each concurrent evaluation its own copy")
        try:
            yield self
        finally:
            self._owner.release()
