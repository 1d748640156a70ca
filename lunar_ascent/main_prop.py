###########################################################################
# IMPORT STATEMENTS #######################################################
###########################################################################

import logging
import os

import numpy as np
import matplotlib.pyplot as plt

# Tudatpy imports
from tudatpy.data import save2txt
from tudatpy.kernel.interface import spice_interface

# Problem-specific imports
from lunar_ascent import utilities as Util
from lunar_ascent.reduction import final_entry, history_to_array

###########################################################################
# DEFINE SIMULATION SETTINGS ##############################################
###########################################################################

# Set simulation start epoch
simulation_start_epoch = 0.0  # s

# Vehicle settings
vehicle_mass = 4.7E3  # kg
vehicle_dry_mass = 2.25E3  # kg
constant_specific_impulse = 311.0  # s

# Fixed simulation termination settings
maximum_duration = 3600.0  # s
termination_altitude = 100.0E3  # m

# Thrust parameters: magnitude [N], node spacing [s], thrust angle at 5 nodes [rad]
thrust_parameters = [15629.13262285292,
                     21.50263026822358,
                     -0.03344538412056863,
                     -0.06456210720352829,
                     0.3943447499535977,
                     0.5358478897251189,
                     -0.8607350478880107]

# Ranges for the thrust parameters (min, max)
decision_variable_range = [(5.0E3, 20.0E3),
                           (10.0, 100.0),
                           (-0.1, 0.1),
                           (-0.5, 0.5),
                           (-0.7, 0.7),
                           (-1.0, 1.0),
                           (-1.3, 1.3)]

# Optimization settings
run_optimization = False
population_size = 50
number_of_evolutions = 50
optimization_seed = 42

# Choose whether output of the propagation is written to files
write_results_to_file = False

# Get path of current directory
current_dir = os.path.dirname(__file__)

###########################################################################
# PLOTTING UTILITIES ######################################################
###########################################################################

def set_axes_equal(ax):
    """
    Set 3D plot axes to equal scale (1:1:1).

    Makes spheres look like spheres, as ``ax.axis('equal')`` does in 2D.
    """
    x_limits = ax.get_xlim3d()
    y_limits = ax.get_ylim3d()
    z_limits = ax.get_zlim3d()

    x_range = x_limits[1] - x_limits[0]
    y_range = y_limits[1] - y_limits[0]
    z_range = z_limits[1] - z_limits[0]

    max_range = max(x_range, y_range, z_range) / 2.0

    x_middle = np.mean(x_limits)
    y_middle = np.mean(y_limits)
    z_middle = np.mean(z_limits)

    ax.set_xlim3d([x_middle - max_range, x_middle + max_range])
    ax.set_ylim3d([y_middle - max_range, y_middle + max_range])
    ax.set_zlim3d([z_middle - max_range, z_middle + max_range])

def plot_state_history(state_history, show=True):
    """Plot the 3D trajectory and the mass of the vehicle over time."""
    states = history_to_array(state_history)
    times = states[:, 0]
    positions = states[:, 1:4]
    masses = states[:, -1]

    fig = plt.figure(figsize=(12, 5))

    ax1 = fig.add_subplot(1, 2, 1, projection='3d')
    ax1.plot(positions[:, 0] / 1E3, positions[:, 1] / 1E3, positions[:, 2] / 1E3, label="Trajectory")
    ax1.set_xlabel("x [km]")
    ax1.set_ylabel("y [km]")
    ax1.set_zlabel("z [km]")
    ax1.set_title("Ascent trajectory (Moon-centered)")
    ax1.legend()
    set_axes_equal(ax1)

    ax2 = fig.add_subplot(1, 2, 2)
    ax2.plot(times - times[0], masses, color="orange", label="Mass(t)")
    ax2.set_xlabel("Time since start [s]")
    ax2.set_ylabel("Mass [kg]")
    ax2.set_title("Vehicle mass")
    ax2.legend()

    plt.tight_layout()
    if show:
        plt.show()
    return fig

###########################################################################
# PROPAGATE AND OPTIMIZE ##################################################
###########################################################################

def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    # Load spice kernels
    spice_interface.load_standard_kernels()

    problem = Util.lunar_ascent_problem(
        decision_variable_range,
        simulation_start_epoch=simulation_start_epoch,
        vehicle_mass=vehicle_mass,
        vehicle_dry_mass=vehicle_dry_mass,
        constant_specific_impulse=constant_specific_impulse,
        maximum_duration=maximum_duration,
        termination_altitude=termination_altitude)

    objectives = problem.fitness(thrust_parameters)
    state_history = problem.get_last_run_propagated_state_history()
    dependent_variable_history = problem.get_last_run_dependent_variable_history()

    ### OUTPUT OF THE SIMULATION ###
    final_time, final_dependent = final_entry(dependent_variable_history)
    final_dependent = dict(zip(Util.DEPENDENT_VARIABLE_NAMES, final_dependent))
    print("=== Propagation summary ===")
    print(f"Stop reason:            {Util.termination_reason(problem.get_last_run_dynamics_simulator())}")
    print(f"Final time [s]:         {final_time - simulation_start_epoch:.2f}")
    print(f"Final altitude [m]:     {final_dependent['altitude']:.2f}")
    print(f"Final speed [m/s]:      {final_dependent['relative_speed']:.2f}")
    print(f"Final FPA [deg]:        {np.rad2deg(final_dependent['flight_path_angle']):.4f}")
    print(f"Final body mass [kg]:   {final_dependent['body_mass']:.3f}")
    print(f"Objectives:             {objectives}")
    print(f"Constraints:            {problem.get_last_constraints()}")

    if write_results_to_file:
        output_path = os.path.join(current_dir, 'SimulationOutput')
        save2txt(state_history, 'state_history.dat', output_path)
        save2txt(dependent_variable_history, 'dependent_variable_history.dat', output_path)

    plot_state_history(state_history)

    if run_optimization:
        # pygmo is an optional install
        from lunar_ascent.optimization import FailurePenalizedProblem, optimize

        history = optimize(FailurePenalizedProblem(problem),
                           population_size=population_size,
                           number_of_evolutions=number_of_evolutions,
                           seed=optimization_seed)
        print("=== Optimization summary ===")
        print(f"Champion thrust parameters: {list(history.champion_x)}")
        print(f"Champion fitness:           {list(history.champion_f)}")
        print(f"Failed propagations:        {history.number_of_failures}")

if __name__ == "__main__":
    main()
