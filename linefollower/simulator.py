"""
Main line follower simulator class
"""

import enum
import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

import numpy as np

from linefollower.controller import PIDController
from linefollower.dynamics import Dynamics, make_dynamics
from linefollower.errors import ConfigurationError
from linefollower.params import ControllerParams, RobotParams, SimulationConfig
from linefollower.sensors import SensorArray
from linefollower.state import Point2D, RobotState, WheelCommand
from linefollower.track import Track

logger = logging.getLogger(__name__)


class SimulationOutcome(enum.Enum):
    """How a run ended (RUNNING until it does)"""

    RUNNING = "running"
    LAP_COMPLETED = "lap_completed"
    DERAILED = "derailed"
    BUDGET_EXHAUSTED = "budget_exhausted"
    ABORTED = "aborted"

    @property
    def terminal(self) -> bool:
        return self is not SimulationOutcome.RUNNING


@dataclass(frozen=True)
class TraceSample:
    """Snapshot taken after one simulation tick"""

    tick: int
    time: float  # s
    state: RobotState
    readings: np.ndarray  # sensed at the pose the tick started from
    error: float  # line-position error seen by the controller (m)
    command: WheelCommand  # command held during this tick
    offset: float  # signed lateral offset of the robot centre (m)
    tangent_speed: float  # velocity component along the track tangent (m/s)
    progress: float  # unwrapped distance travelled along the track (m)
    reference_error: float  # squared distance to the reference point (m²)
    outcome: SimulationOutcome


@dataclass
class SimulationResult:
    """Per-tick trace of a run as arrays, row 0 being the initial condition

    Row n holds the state after tick n together with the command held
    during that tick and the sensor readings that tick started from, so the
    readings lag the state by one tick and rows 0 and 1 read the same pose.
    """

    time: np.ndarray  # [N]
    state: np.ndarray  # [N x RobotState.SIZE]
    readings: np.ndarray  # [N x sensor count]
    error: np.ndarray  # [N]
    command: np.ndarray  # [N x 2] (left, right)
    offset: np.ndarray  # [N]
    tangent_speed: np.ndarray  # [N]
    progress: np.ndarray  # [N]
    reference_error: np.ndarray  # [N]
    outcome: SimulationOutcome
    ticks: int

    @property
    def positions(self) -> np.ndarray:
        return self.state[:, :2]

    @property
    def derailed(self) -> bool:
        return self.outcome is SimulationOutcome.DERAILED

    @property
    def lap_completed(self) -> bool:
        return self.outcome is SimulationOutcome.LAP_COMPLETED

    def path_length(self) -> float:
        """Length of the polyline through the recorded positions (m)"""
        steps = np.diff(self.positions, axis=0)
        return float(np.sum(np.hypot(steps[:, 0], steps[:, 1])))


class Simulation:
    """Runs one line-following robot on one track

    The track is shared read-only; robot state, controller memory and
    progress are owned by this instance, so independent simulations can run
    side by side.
    """

    def __init__(
        self,
        track: Track,
        controller_params: ControllerParams,
        config: Optional[SimulationConfig] = None,
        robot: Optional[RobotParams] = None,
        sensors: Optional[SensorArray] = None,
        initial_state: Optional[RobotState] = None,
    ) -> None:
        """
        Initialize simulation

        Args:
            track: Closed track to follow
            controller_params: PID gains and base speed
            config: Timing, budget and termination settings
            robot: Robot physical parameters
            sensors: Sensor array (defaults to a 7-sensor bar)
            initial_state: Starting state (defaults to the track start pose)

        Raises:
            ConfigurationError: If the pieces cannot form a valid run
        """
        if not isinstance(track, Track):
            raise ConfigurationError("simulation needs a Track")
        self.track = track
        self.controller_params = controller_params
        self.config = config if config is not None else SimulationConfig()
        self.robot = robot if robot is not None else RobotParams()
        self.sensors = sensors if sensors is not None else SensorArray.linear()
        self.initial_state = (
            initial_state if initial_state is not None else RobotState.at_rest(track.start_pose())
        )
        self.dynamics: Dynamics = make_dynamics(self.robot)
        self.controller = PIDController(
            controller_params,
            self.config.dt_ctrl,
            self.sensors.lateral_positions,
            integral_limit=self.config.integral_limit,
            max_wheel_speed=self.config.max_wheel_speed,
        )
        self.reset()

    def reset(self) -> None:
        """Return to the initial condition"""
        self.controller.reset()
        self.state = self.initial_state
        self.tick = 0
        self.time = 0.0
        self.command = WheelCommand(0.0, 0.0)
        self.error = 0.0
        self.outcome = SimulationOutcome.RUNNING
        self._abort_requested = False
        self._tick_limit = self.config.max_ticks
        projection = self.track.nearest(self.state.position)
        self._station = projection.station
        self._start_station = projection.station
        self.progress = 0.0
        self.offset = projection.offset
        self.readings = self.sensors.read(self.state.pose, self.track)
        self.reference_error = self._reference_error()
        self.tangent_speed = self._tangent_speed(self.state, projection.heading)

    @property
    def done(self) -> bool:
        return self.outcome.terminal

    def abort(self) -> None:
        """Request an early stop

        Takes effect on the next ``step`` of this simulation, or on the next
        sample of an active ``trace`` generator.
        """
        self._abort_requested = True

    @staticmethod
    def _tangent_speed(state: RobotState, track_heading: float) -> float:
        return state.linear_velocity * math.cos(state.heading - track_heading)

    def reference_point(self, time: float) -> Point2D:
        """Track point a robot cruising at the base speed from the start would reach by ``time``"""
        return self.track.point_at(self._start_station + self.controller_params.base_speed * time)

    def _reference_error(self) -> float:
        reference = self.reference_point(self.time)
        return reference.distance_to(self.state.position) ** 2

    def _fork(self) -> "Simulation":
        return Simulation(
            self.track,
            self.controller_params,
            config=self.config,
            robot=self.robot,
            sensors=self.sensors,
            initial_state=self.initial_state,
        )

    def _sample(self) -> TraceSample:
        return TraceSample(
            tick=self.tick,
            time=self.time,
            state=self.state,
            readings=self.readings,
            error=self.error,
            command=self.command,
            offset=self.offset,
            tangent_speed=self.tangent_speed,
            progress=self.progress,
            reference_error=self.reference_error,
            outcome=self.outcome,
        )

    def step(self) -> TraceSample:
        """
        Advance one dt_sim tick

        Reads the sensors at the current pose, lets the controller sample if
        its deadline has come (otherwise the last command is held), integrates
        the dynamics, then checks the termination conditions.

        Returns:
            Snapshot after the tick (the current snapshot if already finished)
        """
        if self.done:
            return self._sample()
        if self._abort_requested:
            self.outcome = SimulationOutcome.ABORTED
            logger.debug("Simulation aborted at tick %d", self.tick)
            return self._sample()

        cfg = self.config
        self.readings = self.sensors.read(self.state.pose, self.track)
        command = self.controller.maybe_update(self.time, self.readings)
        if command is not None:
            self.command = command
            self.error = self.controller.last_error
        self.state = self.dynamics.integrate(self.state, self.command, cfg.dt_sim)
        self.tick += 1
        self.time = self.tick * cfg.dt_sim

        projection = self.track.nearest(self.state.position)
        delta = projection.station - self._station
        # Unwrap the station across the start line
        half = 0.5 * self.track.length
        if delta > half:
            delta -= self.track.length
        elif delta < -half:
            delta += self.track.length
        self._station = projection.station
        self.progress += delta
        self.offset = projection.offset
        self.tangent_speed = self._tangent_speed(self.state, projection.heading)
        self.reference_error = self._reference_error()

        if not all(math.isfinite(v) for v in (self.state.x, self.state.y, self.state.heading)):
            self.outcome = SimulationOutcome.DERAILED
        elif abs(self.offset) > cfg.derailment_offset:
            self.outcome = SimulationOutcome.DERAILED
        elif cfg.stop_on_lap and self.progress >= cfg.laps * self.track.length:
            self.outcome = SimulationOutcome.LAP_COMPLETED
        elif self.tick >= self._tick_limit:
            self.outcome = SimulationOutcome.BUDGET_EXHAUSTED
        if self.done:
            logger.info(
                "Simulation finished: %s after %d ticks (%.3f s)",
                self.outcome.value, self.tick, self.time,
            )
        return self._sample()

    def trace(self) -> Iterator[TraceSample]:
        """
        Lazily replay the run from the initial condition

        Every generator drives its own private run from the initial
        condition, so traces can be interleaved with each other and with
        ``run`` and each one replays the identical sequence.

        Yields:
            One snapshot per tick until a terminal outcome
        """
        runner = self._fork()
        while not runner.done:
            if self._abort_requested:
                self._abort_requested = False
                runner.abort()
            sample = runner.step()
            if sample.outcome is SimulationOutcome.ABORTED:
                break
            yield sample

    def run(
        self,
        max_ticks: Optional[int] = None,
        should_stop: Optional[Callable[[TraceSample], bool]] = None,
    ) -> SimulationResult:
        """
        Run from the initial condition to a terminal outcome

        Args:
            max_ticks: Optional tick budget overriding the configured one
            should_stop: External abort check called after every tick; the
                run ends as ABORTED once it returns True

        Returns:
            Full trace including the initial condition as row 0
        """
        limit = self.config.max_ticks if max_ticks is None else max_ticks
        if limit <= 0:
            raise ConfigurationError(f"max_ticks must be positive, got {limit}")
        self.reset()
        self._tick_limit = limit
        samples: List[TraceSample] = [self._sample()]
        while not self.done:
            sample = self.step()
            if sample.outcome is SimulationOutcome.ABORTED:
                break
            samples.append(sample)
            if should_stop is not None and not self.done and should_stop(sample):
                self.abort()
        return self._collect(samples)

    def _collect(self, samples: List[TraceSample]) -> SimulationResult:
        return SimulationResult(
            time=np.array([s.time for s in samples]),
            state=np.array([s.state.to_array() for s in samples]),
            readings=np.array([s.readings for s in samples]),
            error=np.array([s.error for s in samples]),
            command=np.array([s.command.as_tuple() for s in samples]),
            offset=np.array([s.offset for s in samples]),
            tangent_speed=np.array([s.tangent_speed for s in samples]),
            progress=np.array([s.progress for s in samples]),
            reference_error=np.array([s.reference_error for s in samples]),
            outcome=self.outcome,
            ticks=self.tick,
        )
