"""
===============================================================================
LUNAR ASCENT - Tudat Backend Test Suite
===============================================================================
Tests for the outcome checks of the Tudat dynamics simulator wrapper. The
Tudat simulator itself is replaced, so no ephemeris kernels are needed, but
the backend module still requires tudatpy to import.
===============================================================================
"""

import pytest

pytest.importorskip("tudatpy")

from lunar_ascent import simulator
from lunar_ascent.exceptions import PropagationFailed

from conftest import FakeDynamicsSimulator, make_propagator_settings


class FakeTerminationDetails:
    termination_reason = "unknown_propagation_termination_reason"


class FakeTudatSimulator(FakeDynamicsSimulator):

    def __init__(self, integration_completed_successfully):
        super().__init__({0.0: [1.0] * 7, 1.0: [2.0] * 7}, {})
        self.integration_completed_successfully = integration_completed_successfully
        self.propagation_termination_details = FakeTerminationDetails()


@pytest.fixture
def built_propagator_settings():
    propagator_settings = make_propagator_settings()
    propagator_settings.derived_models = "built propagator settings"
    return propagator_settings


class TestCreateDynamicsSimulator:

    def test_incomplete_integration_rejected(self, monkeypatch, bodies, built_propagator_settings):
        monkeypatch.setattr(simulator.numerical_simulation, "create_dynamics_simulator",
                            lambda bodies, propagator_settings: FakeTudatSimulator(False))
        with pytest.raises(PropagationFailed, match="unknown_propagation_termination_reason"):
            simulator.create_dynamics_simulator(bodies, "integrator_settings", built_propagator_settings)

    def test_tudat_error_becomes_propagation_failed(self, monkeypatch, bodies, built_propagator_settings):
        def create_dynamics_simulator(bodies, propagator_settings):
            raise RuntimeError("Error in propagation")

        monkeypatch.setattr(simulator.numerical_simulation, "create_dynamics_simulator",
                            create_dynamics_simulator)
        with pytest.raises(PropagationFailed) as caught:
            simulator.create_dynamics_simulator(bodies, "integrator_settings", built_propagator_settings)
        assert isinstance(caught.value.__cause__, RuntimeError)

    def test_completed_integration_returned(self, monkeypatch, bodies, built_propagator_settings):
        tudat_simulator = FakeTudatSimulator(True)
        received = []

        def create_dynamics_simulator(bodies, propagator_settings):
            received.append(propagator_settings)
            return tudat_simulator

        monkeypatch.setattr(simulator.numerical_simulation, "create_dynamics_simulator",
                            create_dynamics_simulator)
        assert simulator.create_dynamics_simulator(
            bodies, "integrator_settings", built_propagator_settings) is tudat_simulator
        assert received == ["built propagator settings"]
