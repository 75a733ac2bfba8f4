"""
Unit tests for the discrete PID controller.

Tests the line error, the control law and the sample clock that decides
when a new command replaces the held one.
"""

import numpy as np
import pytest

from linefollower import ConfigurationError, ControllerParams, ControllerState, PIDController
from linefollower.controller import weighted_centroid

WEIGHTS = [-0.01, 0.0, 0.01]
READINGS = np.array([0.0, 1.0, 1.0])  # centroid 0.005 m, line to the left


def make_controller(kp=10.0, ki=0.0, kd=0.0, base_speed=0.5, **kwargs) -> PIDController:
    params = ControllerParams(kp=kp, ki=ki, kd=kd, base_speed=base_speed)
    return PIDController(params, 0.01, WEIGHTS, **kwargs)


class TestLineError:
    """Test suite for the weighted-centroid line error"""

    def test_centroid(self) -> None:
        """Test reading-weighted mean of sensor positions"""
        assert abs(weighted_centroid(READINGS, np.array(WEIGHTS)) - 0.005) < 1e-15

    def test_no_reading_is_none(self) -> None:
        """Test that an all-dark array has no centroid"""
        assert weighted_centroid(np.zeros(3), np.array(WEIGHTS)) is None

    def test_lost_line_holds_previous_error(self) -> None:
        """Test that losing the line repeats the last error"""
        controller = make_controller()
        controller.compute(controller.line_error(READINGS))

        assert abs(controller.line_error(np.zeros(3)) - 0.005) < 1e-15

    def test_lost_line_at_start_is_zero(self) -> None:
        """Test that a fresh controller treats a lost line as zero error"""
        assert make_controller().line_error(np.zeros(3)) == 0.0


class TestControlLaw:
    """Test suite for PID terms and command mixing"""

    def test_proportional(self) -> None:
        """Test left = base - Kp*e and right = base + Kp*e"""
        command = make_controller(kp=10.0).compute(0.005)

        assert abs(command.left - 0.45) < 1e-12
        assert abs(command.right - 0.55) < 1e-12

    def test_positive_error_turns_left(self) -> None:
        """Test that a line to the left speeds up the right wheel"""
        command = make_controller(kp=5.0).compute(0.01)

        assert command.right > command.left

    def test_integral_accumulates(self) -> None:
        """Test integral of error times sample period"""
        controller = make_controller(kp=0.0, ki=2.0)
        controller.compute(0.005)
        first = controller.last_turn
        controller.compute(0.005)

        assert abs(first - 1e-4) < 1e-15
        assert abs(controller.last_turn - 2e-4) < 1e-15
        assert abs(controller.state.integral - 1e-4) < 1e-15

    def test_derivative(self) -> None:
        """Test derivative against the previous sample (zero before the first)"""
        controller = make_controller(kp=0.0, kd=1.0)
        controller.compute(0.005)
        first = controller.last_turn
        controller.compute(0.005)

        assert abs(first - 0.5) < 1e-12
        assert controller.last_turn == 0.0

    def test_integral_limit(self) -> None:
        """Test symmetric clamping of the integral term"""
        controller = make_controller(ki=1.0, integral_limit=1e-5)
        for _ in range(10):
            controller.compute(1.0)
        assert controller.state.integral == 1e-5

        for _ in range(10):
            controller.compute(-1.0)
        assert controller.state.integral == -1e-5

    def test_unbounded_integral_by_default(self) -> None:
        """Test that without a limit the integral grows freely"""
        controller = make_controller(ki=1.0)
        for _ in range(10):
            controller.compute(1.0)

        assert abs(controller.state.integral - 0.1) < 1e-12

    def test_wheel_speed_clamp(self) -> None:
        """Test that commands saturate at max_wheel_speed"""
        command = make_controller(kp=10.0, max_wheel_speed=0.52).compute(0.005)

        assert abs(command.left - 0.45) < 1e-12
        assert command.right == 0.52

    def test_reset(self) -> None:
        """Test that reset clears all memory"""
        controller = make_controller(ki=1.0)
        controller.maybe_update(0.0, READINGS)
        controller.reset()

        assert controller.state == ControllerState()
        assert controller.next_deadline == 0.0
        assert controller.last_turn == 0.0

    def test_invalid_sample_period(self) -> None:
        """Test that the sample period must be positive"""
        with pytest.raises(ConfigurationError):
            PIDController(ControllerParams(), 0.0, WEIGHTS)

    def test_empty_weights(self) -> None:
        """Test that a controller needs sensor weights"""
        with pytest.raises(ConfigurationError):
            PIDController(ControllerParams(), 0.01, [])


class TestSampleClock:
    """Test suite for deadline-driven sampling"""

    def test_first_sample_at_time_zero(self) -> None:
        """Test that the controller samples immediately"""
        controller = make_controller()

        assert controller.maybe_update(0.0, READINGS) is not None
        assert abs(controller.next_deadline - 0.01) < 1e-15

    def test_holds_between_deadlines(self) -> None:
        """Test that no command is produced before the next deadline"""
        controller = make_controller()
        controller.maybe_update(0.0, READINGS)

        assert controller.maybe_update(0.005, READINGS) is None
        assert controller.maybe_update(0.01, READINGS) is not None

    def test_update_count_over_ticks(self) -> None:
        """Test one update per dt_ctrl over 100 ticks of 1 ms"""
        controller = make_controller()
        commands = [controller.maybe_update(n * 0.001, READINGS) for n in range(100)]
        updated = [n for n, command in enumerate(commands) if command is not None]

        assert updated == list(range(0, 100, 10))
        for command in commands:
            if command is not None:
                assert abs(command.right - command.left - 2 * 10.0 * 0.005) < 1e-12

    def test_late_call_realigns_to_grid(self) -> None:
        """Test that a late sample schedules the next grid instant"""
        controller = make_controller()
        controller.maybe_update(0.0, READINGS)
        controller.maybe_update(0.035, READINGS)

        assert abs(controller.next_deadline - 0.04) < 1e-15
        assert controller.state.samples == 4

    def test_lost_line_update_reuses_error(self) -> None:
        """Test that a sample with no line seen repeats the last command"""
        controller = make_controller()
        first = controller.maybe_update(0.0, READINGS)
        second = controller.maybe_update(0.01, np.zeros(3))

        assert controller.last_error == 0.005
        assert abs(second.left - first.left) < 1e-12
        assert abs(second.right - first.right) < 1e-12
