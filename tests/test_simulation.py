"""
Unit tests for simulation execution.

Tests the Simulation step loop: tick timing, held commands, termination
outcomes, abort handling and the restartable trace.
"""

import math
from itertools import islice

import numpy as np
import pytest

from linefollower import (
    ConfigurationError,
    ControllerParams,
    Pose,
    RobotParams,
    RobotState,
    Simulation,
    SimulationConfig,
    SimulationOutcome,
    Track,
)


class TestSimulation:
    """Test suite for simulation execution"""

    @pytest.fixture
    def track(self) -> Track:
        """Unit circle, 2*pi m per lap"""
        return Track.circle(1.0)

    @pytest.fixture
    def params(self) -> ControllerParams:
        """Proportional controller that holds the unit circle"""
        return ControllerParams(kp=10.0, ki=0.0, kd=0.0, base_speed=0.5)

    @pytest.fixture
    def simulation(self, track: Track, params: ControllerParams) -> Simulation:
        """Short-budget simulation with 1 ms ticks and 10 ms control"""
        return Simulation(track, params, config=SimulationConfig(max_ticks=100))

    def test_rejects_non_track(self, params: ControllerParams) -> None:
        """Test that a simulation needs a Track instance"""
        with pytest.raises(ConfigurationError):
            Simulation([(0.0, 0.0)], params)  # type: ignore[arg-type]

    def test_initial_row(self, simulation: Simulation) -> None:
        """Test that row 0 is the initial condition at the track start"""
        result = simulation.run()

        assert result.time[0] == 0.0
        assert abs(result.state[0, 0]) < 1e-12
        assert abs(result.state[0, 1] + 1.0) < 1e-12
        assert result.progress[0] == 0.0
        assert list(result.command[0]) == [0.0, 0.0]

    def test_budget_exhausted(self, simulation: Simulation) -> None:
        """Test that the tick budget ends the run with one row per tick"""
        result = simulation.run()

        assert result.outcome is SimulationOutcome.BUDGET_EXHAUSTED
        assert result.ticks == 100
        assert len(result.time) == 101
        assert result.state.shape == (101, RobotState.SIZE)
        assert result.readings.shape == (101, 7)

    def test_time_is_tick_times_dt(self, simulation: Simulation) -> None:
        """Test that simulation time is derived from the tick count"""
        result = simulation.run()

        assert np.allclose(result.time, np.arange(101) * 0.001, rtol=0, atol=1e-15)

    def test_run_budget_override(self, track: Track, params: ControllerParams) -> None:
        """Test that run(max_ticks) caps a longer configured budget"""
        result = Simulation(track, params).run(max_ticks=50)

        assert result.outcome is SimulationOutcome.BUDGET_EXHAUSTED
        assert result.ticks == 50

    def test_run_budget_override_can_extend(self, track: Track, params: ControllerParams) -> None:
        """Test that run(max_ticks) also lifts a shorter configured budget"""
        config = SimulationConfig(max_ticks=100, stop_on_lap=False)
        result = Simulation(track, params, config=config).run(max_ticks=300)

        assert result.outcome is SimulationOutcome.BUDGET_EXHAUSTED
        assert result.ticks == 300
        assert len(result.time) == 301

    def test_override_does_not_leak_into_next_run(self, simulation: Simulation) -> None:
        """Test that a later run falls back to the configured budget"""
        simulation.run(max_ticks=30)
        result = simulation.run()

        assert result.ticks == 100

    def test_invalid_run_budget(self, simulation: Simulation) -> None:
        """Test that a non-positive run budget is rejected"""
        with pytest.raises(ConfigurationError):
            simulation.run(max_ticks=0)

    def test_command_held_between_samples(self, simulation: Simulation) -> None:
        """Test zero-order hold: commands only change on controller ticks"""
        result = simulation.run()

        for n in range(1, len(result.time)):
            if (n - 1) % 10 != 0:
                assert np.array_equal(result.command[n], result.command[n - 1])
        # The first tick samples at t = 0 and replaces the idle command
        assert result.command[1, 0] > 0.0

    def test_deterministic(self, track: Track, params: ControllerParams) -> None:
        """Test that identical inputs give bit-identical traces"""
        config = SimulationConfig(max_ticks=500)
        first = Simulation(track, params, config=config).run()
        second = Simulation(track, params, config=config).run()

        assert np.array_equal(first.state, second.state)
        assert np.array_equal(first.command, second.command)
        assert first.outcome is second.outcome

    def test_run_is_repeatable(self, simulation: Simulation) -> None:
        """Test that run resets the simulation every call"""
        first = simulation.run()
        second = simulation.run()

        assert np.array_equal(first.state, second.state)

    def test_trace_is_lazy_and_restartable(self, simulation: Simulation) -> None:
        """Test that trace yields ticks one by one and replays identically"""
        head = list(islice(simulation.trace(), 5))
        again = list(islice(simulation.trace(), 5))

        assert [s.tick for s in head] == [1, 2, 3, 4, 5]
        assert [s.state for s in head] == [s.state for s in again]

    def test_interleaved_traces_are_independent(self, simulation: Simulation) -> None:
        """Test that starting a second trace or a run leaves an active trace untouched"""
        first = simulation.trace()
        head = [next(first) for _ in range(50)]
        second = simulation.trace()
        restarted = next(second)
        simulation.run(max_ticks=10)
        resumed = next(first)

        assert restarted.tick == 1
        assert resumed.tick == 51
        assert restarted.state == head[0].state

    def test_trace_ends_at_budget(self, simulation: Simulation) -> None:
        """Test that a full trace ends with the terminal outcome"""
        samples = list(simulation.trace())

        assert len(samples) == 100
        assert samples[-1].outcome is SimulationOutcome.BUDGET_EXHAUSTED
        assert all(s.outcome is SimulationOutcome.RUNNING for s in samples[:-1])

    def test_step_after_finish_is_noop(self, simulation: Simulation) -> None:
        """Test that stepping a finished simulation changes nothing"""
        simulation.run()
        sample = simulation.step()

        assert sample.tick == 100
        assert simulation.tick == 100

    def test_should_stop_aborts(self, track: Track, params: ControllerParams) -> None:
        """Test external abort through the should_stop callback"""
        result = Simulation(track, params).run(should_stop=lambda s: s.tick >= 50)

        assert result.outcome is SimulationOutcome.ABORTED
        assert result.ticks == 50
        assert len(result.time) == 51

    def test_abort_during_trace(self, simulation: Simulation) -> None:
        """Test that abort ends a running trace"""
        samples = simulation.trace()
        next(samples)
        simulation.abort()

        with pytest.raises(StopIteration):
            next(samples)
        assert [s.tick for s in islice(simulation.trace(), 3)] == [1, 2, 3]

    def test_reference_point_moves_at_base_speed(self, simulation: Simulation, track: Track) -> None:
        """Test the cruising reference and its squared distance in the trace"""
        quarter = simulation.reference_point(track.length / 4 / 0.5)
        result = simulation.run()

        assert abs(quarter.x - 1.0) < 1e-9 and abs(quarter.y) < 1e-9
        assert result.reference_error[0] == 0.0
        assert np.all(result.reference_error < 1e-4)

    def test_readings_lag_state_by_one_tick(self, simulation: Simulation) -> None:
        """Test that each row carries the readings its tick started from"""
        result = simulation.run()

        assert np.array_equal(result.readings[0], result.readings[1])
        after_first_tick = RobotState.from_array(result.state[1]).pose
        assert np.array_equal(result.readings[2], simulation.sensors.read(after_first_tick, simulation.track))

    def test_derails_without_steering(self, track: Track) -> None:
        """Test that driving straight off the line is detected as derailment"""
        start = RobotState.at_rest(Pose(0.0, -1.0, math.pi / 2))
        simulation = Simulation(
            track,
            ControllerParams(kp=0.0, ki=0.0, kd=0.0, base_speed=0.5),
            initial_state=start,
        )
        result = simulation.run()

        assert result.derailed
        assert result.ticks <= 250
        assert abs(result.offset[-1]) > simulation.config.derailment_offset

    def test_motor_lag_runs(self, track: Track, params: ControllerParams) -> None:
        """Test that the lag motor model plugs into the loop"""
        simulation = Simulation(
            track, params, config=SimulationConfig(max_ticks=500), robot=RobotParams(motor_model="lag")
        )
        result = simulation.run()

        assert result.outcome is SimulationOutcome.BUDGET_EXHAUSTED
        assert result.state[-1, 5] > 0.0  # left wheel has spun up
        assert result.state[1, 5] < result.command[1, 0]


class TestCircleFollowing:
    """Test suite for closed-loop following on a circle"""

    @pytest.fixture
    def track(self) -> Track:
        """Unit circle, 2*pi m per lap"""
        return Track.circle(1.0)

    @pytest.fixture
    def params(self) -> ControllerParams:
        """Proportional controller at 0.5 m/s"""
        return ControllerParams(kp=10.0, ki=0.0, kd=0.0, base_speed=0.5)

    def test_follows_one_lap(self, track: Track, params: ControllerParams) -> None:
        """Test that one lap's worth of travel stays on the line and closes the loop"""
        config = SimulationConfig(stop_on_lap=False, max_ticks=12566)
        result = Simulation(track, params, config=config).run()

        assert not result.derailed
        assert abs(result.path_length() - 2 * math.pi) < 0.01 * 2 * math.pi
        assert np.max(np.abs(result.offset)) < 0.01
        assert np.hypot(*(result.positions[-1] - result.positions[0])) < 0.05

    def test_lap_completed(self, track: Track, params: ControllerParams) -> None:
        """Test that progress past one track length ends the run"""
        result = Simulation(track, params, config=SimulationConfig(max_ticks=15000)).run()

        assert result.outcome is SimulationOutcome.LAP_COMPLETED
        assert result.progress[-1] >= track.length
        assert result.progress[-2] < track.length

    def test_multiple_laps(self, params: ControllerParams) -> None:
        """Test that the lap target scales with laps"""
        track = Track.circle(0.5)
        config = SimulationConfig(laps=2, max_ticks=15000)
        result = Simulation(track, params, config=config).run()

        assert result.outcome is SimulationOutcome.LAP_COMPLETED
        assert result.progress[-1] >= 2 * track.length
        assert result.time[-1] > 2 * track.length / params.base_speed * 0.95
