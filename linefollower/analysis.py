"""
Trace analysis and fitness scoring
"""

import logging
from typing import Any, Dict, Optional

import numpy as np
from scipy.integrate import trapezoid

from linefollower.params import ControllerParams, RobotParams, SimulationConfig
from linefollower.sensors import SensorArray
from linefollower.simulator import Simulation, SimulationResult
from linefollower.track import Track

logger = logging.getLogger(__name__)

# Weights of the squared lateral offset and of the squared distance to the
# reference point against forward progress in the fitness
OFFSET_WEIGHT = 100.0
REFERENCE_WEIGHT = 1.0


class TraceAnalyzer:
    """Summarizes a run into the scalars an optimizer or report needs"""

    def __init__(
        self,
        track: Track,
        derailment_penalty: float = 1000.0,
        offset_weight: float = OFFSET_WEIGHT,
        reference_weight: float = REFERENCE_WEIGHT,
        robot: Optional[RobotParams] = None,
    ) -> None:
        """
        Initialize trace analyzer

        Args:
            track: Track the run was simulated on
            derailment_penalty: Amount subtracted from the fitness of a derailed run
            offset_weight: Weight of the squared offset in the fitness integral
            reference_weight: Weight of the squared reference-tracking error,
                0 to score line following alone
            robot: Robot the run was simulated with (for wheel rates)
        """
        self.track = track
        self.derailment_penalty = derailment_penalty
        self.offset_weight = offset_weight
        self.reference_weight = reference_weight
        self.robot = robot if robot is not None else RobotParams()

    def analyze(self, result: SimulationResult) -> Dict[str, Any]:
        """
        Analyze a simulation trace

        Args:
            result: Output of ``Simulation.run``

        Returns:
            Dictionary with analysis results
        """
        t = result.time
        offset = result.offset
        tangent_speed = result.tangent_speed

        time_survived = float(t[-1]) if len(t) > 0 else 0.0
        has_span = len(t) > 1
        squared = offset ** 2
        cumulative_squared_offset = float(trapezoid(squared, t)) if has_span else 0.0
        rms_offset = (
            float(np.sqrt(cumulative_squared_offset / time_survived)) if time_survived > 0 else 0.0
        )
        max_offset = float(np.max(np.abs(offset))) if len(offset) > 0 else 0.0
        mean_tangent_speed = (
            float(trapezoid(tangent_speed, t) / time_survived) if time_survived > 0 else 0.0
        )

        # Weaving: each pair of sign changes of the offset is one oscillation
        signs = np.sign(offset)
        signs = signs[signs != 0]
        crossings = int(np.sum(np.diff(signs) != 0)) if len(signs) > 1 else 0
        oscillation_frequency = crossings / (2 * time_survived) if time_survived > 0 else 0.0

        progress = float(result.progress[-1]) if len(result.progress) > 0 else 0.0
        reference_error = result.reference_error
        mean_reference_error = (
            float(trapezoid(reference_error, t) / time_survived) if time_survived > 0 else 0.0
        )
        max_wheel_speed = float(np.max(np.abs(result.command))) if result.command.size else 0.0

        reward = tangent_speed - self.reference_weight * reference_error - self.offset_weight * squared
        fitness = float(trapezoid(reward, t)) if has_span else 0.0
        if result.derailed:
            fitness -= self.derailment_penalty

        summary = {
            "outcome": result.outcome.value,
            "ticks": result.ticks,
            "time_survived": time_survived,
            "distance_travelled": result.path_length() if has_span else 0.0,
            "progress": progress,
            "laps": progress / self.track.length,
            "lap_completed": result.lap_completed,
            "derailed": result.derailed,
            "cumulative_squared_offset": cumulative_squared_offset,
            "rms_offset": rms_offset,
            "max_offset": max_offset,
            "mean_tangent_speed": mean_tangent_speed,
            "mean_reference_error": mean_reference_error,
            "max_wheel_rate": self.robot.wheel_rate(max_wheel_speed),
            "zero_crossings": crossings,
            "oscillation_frequency": float(oscillation_frequency),
            "fitness": fitness,
        }
        logger.debug("Trace summary: %s", summary)
        return summary


def evaluate_fitness(
    track: Track,
    params: ControllerParams,
    config: Optional[SimulationConfig] = None,
    robot: Optional[RobotParams] = None,
    sensors: Optional[SensorArray] = None,
    derailment_penalty: float = 1000.0,
) -> float:
    """
    Scalar fitness of one candidate, higher is better

    Args:
        track: Shared read-only track
        params: Candidate controller parameters
        config: Simulation settings
        robot: Robot physical parameters
        sensors: Sensor array
        derailment_penalty: Penalty applied when the robot derails

    Returns:
        Fitness of the run
    """
    simulation = Simulation(track, params, config=config, robot=robot, sensors=sensors)
    result = simulation.run()
    return TraceAnalyzer(track, derailment_penalty, robot=robot).analyze(result)["fitness"]
