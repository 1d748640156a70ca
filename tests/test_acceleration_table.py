"""
===============================================================================
LUNAR ASCENT - Acceleration Settings Test Suite
===============================================================================
Tests for the acceleration settings table (versioning, self-exerted
replacement, single-owner checkout) and the propagator configuration
(translational sub-configuration lookup, model reset).
===============================================================================
"""

import threading

import numpy as np
import pytest

from lunar_ascent.acceleration_table import AccelerationSettingsTable
from lunar_ascent.exceptions import ConcurrentEvaluationError, ConfigurationError
from lunar_ascent.propagator_settings import (MassStateSettings, PropagatorConfiguration, StateType,
                                              TranslationalStateSettings, multitype)


@pytest.fixture
def table():
    return AccelerationSettingsTable({
        "Vehicle": {"Vehicle": ["old_thrust"], "Moon": ["moon_gravity"], "Earth": ["earth_gravity"]}})


# =============================================================================
# Test: table contents
# =============================================================================

class TestAccelerationSettingsTable:

    def test_lookup(self, table):
        assert table.get("Vehicle", "Moon") == ("moon_gravity",)
        assert table.get("Vehicle", "Sun") == ()
        assert table.self_exerted("Vehicle") == ("old_thrust",)
        assert "Vehicle" in table
        assert table.bodies_undergoing == ["Vehicle"]

    def test_input_is_copied(self):
        settings = {"Vehicle": {"Moon": ["moon_gravity"]}}
        table = AccelerationSettingsTable(settings)
        settings["Vehicle"]["Moon"].append("sneaky")
        assert table.get("Vehicle", "Moon") == ("moon_gravity",)

    def test_replace_self_exerted(self, table):
        table.replace_self_exerted("Vehicle", ["new_thrust"])
        assert table.self_exerted("Vehicle") == ("new_thrust",)
        assert table.get("Vehicle", "Moon") == ("moon_gravity",)

    def test_replace_twice_keeps_one_entry(self, table):
        table.replace_self_exerted("Vehicle", ["thrust_a"])
        table.replace_self_exerted("Vehicle", ["thrust_b"])
        assert table.self_exerted("Vehicle") == ("thrust_b",)

    def test_replace_on_new_body(self):
        table = AccelerationSettingsTable()
        table.replace_self_exerted("Lander", ["thrust"])
        assert table.self_exerted("Lander") == ("thrust",)

    def test_mutations_bump_version(self, table):
        assert table.version == 0
        table.replace_self_exerted("Vehicle", ["thrust"])
        table.set_accelerations("Vehicle", "Sun", ["sun_gravity"])
        assert table.version == 2

    def test_as_dict_is_detached(self, table):
        snapshot = table.as_dict()
        snapshot["Vehicle"]["Moon"].clear()
        assert table.get("Vehicle", "Moon") == ("moon_gravity",)

    def test_copy_is_independent(self, table):
        copy = table.copy()
        copy.replace_self_exerted("Vehicle", ["other_thrust"])
        assert table.self_exerted("Vehicle") == ("old_thrust",)
        assert copy.version == table.version + 1


# =============================================================================
# Test: single-owner checkout
# =============================================================================

class TestCheckout:

    def test_nested_checkout_rejected(self, table):
        with table.checkout():
            assert table.checked_out
            with pytest.raises(ConcurrentEvaluationError):
                with table.checkout():
                    pass
        assert not table.checked_out

    def test_released_on_error(self, table):
        with pytest.raises(KeyError):
            with table.checkout():
                raise KeyError("boom")
        with table.checkout():
            pass

    def test_checkout_from_other_thread_rejected(self, table):
        errors = []

        def evaluate():
            try:
                with table.checkout():
                    pass
            except ConcurrentEvaluationError as caught:
                errors.append(caught)

        with table.checkout():
            worker = threading.Thread(target=evaluate)
            worker.start()
            worker.join()
        assert len(errors) == 1

    def test_copies_are_owned_separately(self, table):
        copy = table.copy()
        with table.checkout():
            with copy.checkout():
                assert copy.checked_out


# =============================================================================
# Test: propagator configuration
# =============================================================================

class TestPropagatorConfiguration:

    def _translational(self):
        return TranslationalStateSettings(["Moon"], ["Vehicle"], AccelerationSettingsTable(), np.zeros(6))

    def test_multitype_groups_by_state_type(self):
        translational = self._translational()
        mass = MassStateSettings(["Vehicle"], np.array([4.7E3]))
        configuration = multitype([translational, mass], 10.0, "termination", ["altitude"])
        assert configuration.translational_state_settings() is translational
        assert configuration.mass_state_settings() == [mass]
        assert configuration.initial_time == 10.0
        assert configuration.dependent_variables_to_save == ["altitude"]

    def test_missing_translational_settings(self):
        configuration = multitype([MassStateSettings(["Vehicle"], np.array([1.0]))], 0.0)
        with pytest.raises(ConfigurationError):
            configuration.translational_state_settings()

    def test_wrong_kind_of_translational_settings(self):
        configuration = PropagatorConfiguration({StateType.translational: ["not settings"]})
        with pytest.raises(ConfigurationError):
            configuration.translational_state_settings()

    def test_unknown_settings_rejected(self):
        with pytest.raises(ConfigurationError):
            multitype([object()], 0.0)

    def test_reset_drops_derived_models(self):
        configuration = multitype([self._translational()], 0.0)
        configuration.derived_models = "models"
        configuration.reset_integrated_state_models()
        assert configuration.derived_models is None
        assert configuration.version == 1
