"""
Web application for the line follower simulation

Interactive dashboard to run one simulation and inspect its trace.
"""

import logging
from typing import Any, Dict

import dash
from dash import dcc, html, Input, Output, State
from dash.exceptions import PreventUpdate
import numpy as np
import plotly.graph_objs as go

from linefollower import (
    ControllerParams,
    Simulation,
    SimulationConfig,
    SimulationResult,
    TraceAnalyzer,
    Track,
    predefined_track,
)

TRACK = predefined_track()


def build_track_figure(track: Track, result: SimulationResult) -> go.Figure:
    """Track centreline with the robot trajectory on top"""
    centreline = track.sample_points(2000)
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=centreline[:, 0], y=centreline[:, 1],
        mode="lines", name="Track", line=dict(color="black", width=3),
    ))
    fig.add_trace(go.Scatter(
        x=result.positions[:, 0], y=result.positions[:, 1],
        mode="lines", name="Robot", line=dict(color="royalblue", width=1.5),
    ))
    fig.update_layout(
        title=f"Trajectory ({result.outcome.value})",
        xaxis_title="x (m)",
        yaxis_title="y (m)",
        yaxis=dict(scaleanchor="x", scaleratio=1),
        height=600,
        template="plotly_white",
    )
    return fig


def build_error_figure(result: SimulationResult) -> go.Figure:
    """Lateral offset of the robot and sensed line error over time"""
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=result.time, y=result.offset * 1000, mode="lines", name="Centre offset (mm)",
    ))
    fig.add_trace(go.Scatter(
        x=result.time, y=result.error * 1000, mode="lines", name="Sensed error (mm)",
    ))
    fig.update_layout(
        title="Lateral error",
        xaxis_title="Time (s)",
        yaxis_title="Offset (mm)",
        height=400,
        template="plotly_white",
    )
    return fig


def build_command_figure(result: SimulationResult) -> go.Figure:
    """Wheel commands over time"""
    fig = go.Figure()
    fig.add_trace(go.Scatter(x=result.time, y=result.command[:, 0], mode="lines", name="Left"))
    fig.add_trace(go.Scatter(x=result.time, y=result.command[:, 1], mode="lines", name="Right"))
    fig.update_layout(
        title="Wheel commands",
        xaxis_title="Time (s)",
        yaxis_title="Speed (m/s)",
        height=400,
        template="plotly_white",
    )
    return fig


def summary_table(analysis: Dict[str, Any]) -> html.Table:
    rows = [html.Tr([html.Th("Metric"), html.Th("Value")])]
    for key, value in analysis.items():
        if isinstance(value, float):
            value = f"{value:.4f}"
        rows.append(html.Tr([html.Td(key), html.Td(str(value))]))
    return html.Table(rows, style={"width": "50%", "borderCollapse": "collapse", "fontSize": "14px"})


def _number_input(label: str, input_id: str, value: float, step: float) -> html.Div:
    return html.Div([
        html.Label(label, style={"fontWeight": "bold", "marginBottom": "5px"}),
        dcc.Input(id=input_id, type="number", value=value, step=step,
                  style={"width": "100%", "padding": "8px"}),
    ], style={"width": "15%", "display": "inline-block", "marginRight": "20px"})


app = dash.Dash(__name__)
app.title = "Line Follower Simulation"

defaults = ControllerParams()
app.layout = html.Div([
    html.H1("Line Follower Simulation", style={"textAlign": "center", "marginBottom": "30px"}),
    html.Div([
        _number_input("Kp", "kp-input", defaults.kp, 0.1),
        _number_input("Ki", "ki-input", defaults.ki, 0.1),
        _number_input("Kd", "kd-input", defaults.kd, 0.01),
        _number_input("Base speed (m/s)", "speed-input", defaults.base_speed, 0.05),
        _number_input("Duration (s)", "duration-input", 60.0, 5.0),
    ]),
    html.Button("Run Simulation", id="run-button", n_clicks=0,
                style={"marginTop": "20px", "padding": "10px 20px"}),
    dcc.Loading(html.Div(id="results-container")),
], style={"padding": "20px"})


@app.callback(
    Output("results-container", "children"),
    Input("run-button", "n_clicks"),
    State("kp-input", "value"),
    State("ki-input", "value"),
    State("kd-input", "value"),
    State("speed-input", "value"),
    State("duration-input", "value"),
)
def run_simulation(n_clicks: int, kp: float, ki: float, kd: float, speed: float, duration: float):
    if not n_clicks:
        raise PreventUpdate
    if any(v is None for v in (kp, ki, kd, speed, duration)):
        return html.Div("All parameters are required", style={"color": "red"})

    params = ControllerParams(kp=float(kp), ki=float(ki), kd=float(kd), base_speed=float(speed))
    dt_sim = SimulationConfig.dt_sim
    config = SimulationConfig(max_ticks=max(1, int(np.ceil(float(duration) / dt_sim))))
    result = Simulation(TRACK, params, config=config).run()
    analysis = TraceAnalyzer(TRACK).analyze(result)

    return html.Div([
        html.H2("Simulation Results", style={"marginTop": "30px", "marginBottom": "20px"}),
        summary_table(analysis),
        dcc.Graph(figure=build_track_figure(TRACK, result)),
        dcc.Graph(figure=build_error_figure(result)),
        dcc.Graph(figure=build_command_figure(result)),
    ])


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    app.run(debug=True, port=8050)
