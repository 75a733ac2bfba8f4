"""
Line Follower Simulation

This package simulates a two-wheel differential-drive robot following a
closed track of lines and arcs with an array of light sensors and a
discretized PID controller.
"""

from linefollower.analysis import TraceAnalyzer, evaluate_fitness
from linefollower.controller import ControllerState, PIDController
from linefollower.dynamics import DifferentialDrive, MotorLagDrive, make_dynamics
from linefollower.errors import ConfigurationError, GeometryError, LineFollowerError
from linefollower.gain_analysis import best_candidate, run_gain_analysis
from linefollower.geometry import ArcSegment, LineSegment, Segment
from linefollower.params import ControllerParams, RobotParams, SimulationConfig
from linefollower.sensors import SensorArray
from linefollower.simulator import Simulation, SimulationOutcome, SimulationResult, TraceSample
from linefollower.state import Point2D, Pose, RobotState, WheelCommand
from linefollower.track import Track, TrackProjection, predefined_track, rounded_rectangle_track

__all__ = [
    "ArcSegment",
    "ConfigurationError",
    "ControllerParams",
    "ControllerState",
    "DifferentialDrive",
    "GeometryError",
    "LineFollowerError",
    "LineSegment",
    "MotorLagDrive",
    "PIDController",
    "Point2D",
    "Pose",
    "RobotParams",
    "RobotState",
    "Segment",
    "SensorArray",
    "Simulation",
    "SimulationConfig",
    "SimulationOutcome",
    "SimulationResult",
    "TraceAnalyzer",
    "TraceSample",
    "Track",
    "TrackProjection",
    "WheelCommand",
    "best_candidate",
    "evaluate_fitness",
    "make_dynamics",
    "predefined_track",
    "rounded_rectangle_track",
    "run_gain_analysis",
]
