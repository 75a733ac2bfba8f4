"""
Batch evaluation of candidate controller gains
"""

from concurrent.futures import ProcessPoolExecutor
from typing import Any, Dict, List, Optional, Sequence, Tuple

from linefollower.analysis import TraceAnalyzer
from linefollower.params import ControllerParams, RobotParams, SimulationConfig
from linefollower.simulator import Simulation
from linefollower.track import Track


def _run_candidate(
    args: Tuple[Track, ControllerParams, Optional[SimulationConfig], Optional[RobotParams], float]
) -> Dict[str, Any]:
    track, params, config, robot, penalty = args
    simulation = Simulation(track, params, config=config, robot=robot)
    result = simulation.run()
    return {
        "params": params,
        "result": result,
        "analysis": TraceAnalyzer(track, penalty, robot=robot).analyze(result),
    }


def run_gain_analysis(
    candidates: Sequence[ControllerParams],
    track: Track,
    config: Optional[SimulationConfig] = None,
    robot: Optional[RobotParams] = None,
    derailment_penalty: float = 1000.0,
    workers: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Run one simulation per candidate parameter set

    Runs are independent: each owns its robot and controller state while the
    track is shared read-only, so they may be spread over worker processes.

    Args:
        candidates: Controller parameters to evaluate
        track: Track to run on
        config: Simulation settings shared by every run
        robot: Robot physical parameters
        derailment_penalty: Fitness penalty for derailed runs
        workers: Worker processes; None or 1 runs sequentially

    Returns:
        One entry per candidate, in input order, with the params, the
        result and its analysis
    """
    jobs = [(track, params, config, robot, derailment_penalty) for params in candidates]
    if workers is None or workers <= 1:
        return [_run_candidate(job) for job in jobs]
    with ProcessPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(_run_candidate, jobs))


def best_candidate(results: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """Entry with the highest fitness (earliest wins ties)"""
    if not results:
        raise ValueError("no results to rank")
    return max(results, key=lambda entry: entry["analysis"]["fitness"])
