###########################################################################
# IMPORT STATEMENTS #######################################################
###########################################################################

import numpy as np

###########################################################################
# VERTICAL FRAME UTILITIES ################################################
###########################################################################

# Reference axes used to build the local east direction
_INERTIAL_Z_AXIS = np.array([0.0, 0.0, 1.0])
_INERTIAL_X_AXIS = np.array([1.0, 0.0, 0.0])
_INERTIAL_Y_AXIS = np.array([0.0, 1.0, 0.0])


def vertical_to_inertial_rotation(position: np.ndarray, rotation_axis: np.ndarray = None) -> np.ndarray:
    """
    Rotation matrix from the vertical frame to the inertial frame.

    The vertical frame is centred on the vehicle, with the x-axis pointing
    north, the y-axis pointing east and the z-axis pointing down, towards the
    centre of the central body (see Mooij, 1994). North lies in the plane of
    the position and the rotation axis of the central body; without a
    rotation axis the inertial z-axis is used, which under ECLIPJ2000 is off
    the lunar spin axis by about 1.5 deg.

    Parameters
    ----------
    position : np.ndarray
        Position of the vehicle w.r.t. the central body, in inertial
        orientation [m].
    rotation_axis : np.ndarray, optional
        Spin axis of the central body, in inertial orientation.

    Returns
    -------
    rotation : np.ndarray
        3x3 matrix whose columns are the north, east and down unit vectors
        expressed in the inertial frame.
    """
    position = np.asarray(position, dtype=float).reshape(3)
    radius = np.linalg.norm(position)
    if not np.isfinite(radius) or radius == 0.0:
        raise ValueError(f"Cannot build vertical frame at position {position}")

    if rotation_axis is None:
        rotation_axis = _INERTIAL_Z_AXIS
    else:
        rotation_axis = np.asarray(rotation_axis, dtype=float).reshape(3)
        rotation_axis = rotation_axis / np.linalg.norm(rotation_axis)

    up = position / radius
    east = np.cross(rotation_axis, up)
    # Over the poles the east direction is undefined, take the x- or y-axis as reference
    if np.linalg.norm(east) < 1.0E-12:
        reference = _INERTIAL_X_AXIS if abs(up[0]) < 0.9 else _INERTIAL_Y_AXIS
        east = np.cross(up, np.cross(reference, up))
    east = east / np.linalg.norm(east)
    north = np.cross(up, east)

    return np.column_stack((north, east, -up))
