"""
Differential-drive robot dynamics
"""

import math
from typing import Union

import numpy as np
from scipy.integrate import odeint

from linefollower.params import RobotParams
from linefollower.state import RobotState, WheelCommand


def advance_pose(x: float, y: float, heading: float, v: float, omega: float, dt: float):
    """
    Exact pose update for a twist (v, omega) held over ``dt``

    The robot travels along a circular arc of radius v / omega (a straight
    line when omega is zero), i.e. the SE(2) exponential map.

    Returns:
        Tuple of (x, y, heading)
    """
    dtheta = omega * dt
    new_heading = heading + dtheta
    if abs(dtheta) < 1e-9:
        # Second-order expansion around the midpoint heading
        mid = heading + 0.5 * dtheta
        return x + v * dt * math.cos(mid), y + v * dt * math.sin(mid), new_heading
    radius = v / omega
    new_x = x + radius * (math.sin(new_heading) - math.sin(heading))
    new_y = y - radius * (math.cos(new_heading) - math.cos(heading))
    return new_x, new_y, new_heading


class DifferentialDrive:
    """Ideal no-slip differential drive: wheels follow their commands instantly"""

    def __init__(self, params: RobotParams) -> None:
        """
        Initialize dynamics

        Args:
            params: Robot physical parameters
        """
        self.params = params

    def twist(self, left: float, right: float):
        """Body linear (m/s) and angular (rad/s) velocity for wheel speeds"""
        return 0.5 * (left + right), (right - left) / self.params.wheelbase

    def derivatives(self, state: np.ndarray, t: float, command: WheelCommand) -> np.ndarray:
        """
        State-space model: d(state)/dt = f(state, u)

        Args:
            state: [x, y, heading, ...] as produced by ``RobotState.to_array``
            t: Time (unused, the model is time-invariant)
            command: Wheel speed command

        Returns:
            Derivative of the pose components, zero elsewhere
        """
        v, omega = self.twist(command.left, command.right)
        derivative = np.zeros_like(state, dtype=float)
        derivative[0] = v * math.cos(state[2])
        derivative[1] = v * math.sin(state[2])
        derivative[2] = omega
        return derivative

    def integrate(self, state: RobotState, command: WheelCommand, dt: float) -> RobotState:
        """
        Advance ``state`` by ``dt`` under a held wheel command

        Args:
            state: Current robot state
            command: Wheel speeds sustained over the step
            dt: Time step (s)

        Returns:
            New robot state
        """
        v, omega = self.twist(command.left, command.right)
        x, y, heading = advance_pose(state.x, state.y, state.heading, v, omega, dt)
        return RobotState(
            x,
            y,
            heading,
            linear_velocity=v,
            angular_velocity=omega,
            left_speed=command.left,
            right_speed=command.right,
        )


class MotorLagDrive(DifferentialDrive):
    """Differential drive whose wheel speeds follow commands through a second-order lag

    Each wheel obeys c0*v'' + c1*v' + c2*v = u, integrated together with the
    pose using scipy's odeint over every step.
    """

    def derivatives(self, state: np.ndarray, t: float, command: WheelCommand) -> np.ndarray:
        c0, c1, c2 = self.params.motor_coefficients
        _, _, heading, _, _, vl, vr, al, ar = state
        v, omega = self.twist(vl, vr)
        return np.array([
            v * math.cos(heading),  # dx/dt
            v * math.sin(heading),  # dy/dt
            omega,  # dheading/dt
            0.0,  # linear velocity is derived after the step
            0.0,  # angular velocity is derived after the step
            al,  # dvl/dt
            ar,  # dvr/dt
            (command.left - c1 * al - c2 * vl) / c0,  # dal/dt
            (command.right - c1 * ar - c2 * vr) / c0,  # dar/dt
        ])

    def integrate(self, state: RobotState, command: WheelCommand, dt: float) -> RobotState:
        solution = odeint(self.derivatives, state.to_array(), [0.0, dt], args=(command,))
        end = solution[-1]
        v, omega = self.twist(end[5], end[6])
        end[3] = v
        end[4] = omega
        return RobotState.from_array(end)


Dynamics = Union[DifferentialDrive, MotorLagDrive]


def make_dynamics(params: RobotParams) -> Dynamics:
    """Dynamics model selected by ``params.motor_model``"""
    if params.motor_model == "lag":
        return MotorLagDrive(params)
    return DifferentialDrive(params)
