"""
Test suite for the Line Follower Simulation.

This package contains unit tests organized by component:
- test_params.py: Tests for parameter and configuration dataclasses
- test_geometry.py: Tests for line and arc segment geometry
- test_track.py: Tests for track construction and nearest-point queries
- test_sensors.py: Tests for the sensor array
- test_dynamics.py: Tests for robot dynamics
- test_controller.py: Tests for the discrete PID controller
- test_simulation.py: Tests for the simulation loop
- test_analysis.py: Tests for trace analysis and fitness
- test_integration.py: Integration tests for batch gain evaluation
- test_app.py: Tests for the dashboard figure helpers
"""
