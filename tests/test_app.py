"""
Tests for the dashboard figure builders.
"""

import plotly.graph_objs as go
import pytest
from dash import html

from app import build_command_figure, build_error_figure, build_track_figure, summary_table
from linefollower import (
    ControllerParams,
    Simulation,
    SimulationConfig,
    SimulationResult,
    Track,
    TraceAnalyzer,
)


class TestDashboard:
    """Test suite for dashboard helpers"""

    @pytest.fixture
    def track(self) -> Track:
        """Unit circle"""
        return Track.circle(1.0)

    @pytest.fixture
    def result(self, track: Track) -> SimulationResult:
        """Short run on the unit circle"""
        return Simulation(track, ControllerParams(), config=SimulationConfig(max_ticks=200)).run()

    def test_track_figure(self, track: Track, result: SimulationResult) -> None:
        """Test that the track figure shows the centreline and the trajectory"""
        fig = build_track_figure(track, result)

        assert isinstance(fig, go.Figure)
        assert len(fig.data) == 2
        assert len(fig.data[1].x) == len(result.time)
        assert "budget_exhausted" in fig.layout.title.text

    def test_error_and_command_figures(self, result: SimulationResult) -> None:
        """Test the time-series figures"""
        error = build_error_figure(result)
        command = build_command_figure(result)

        assert len(error.data) == 2
        assert len(command.data) == 2
        assert len(command.data[0].y) == len(result.time)

    def test_summary_table(self, track: Track, result: SimulationResult) -> None:
        """Test one table row per metric plus the header"""
        analysis = TraceAnalyzer(track).analyze(result)
        table = summary_table(analysis)

        assert isinstance(table, html.Table)
        assert len(table.children) == len(analysis) + 1
