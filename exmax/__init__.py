"""
exmax: univariate Gaussian mixture fitting with EM and BIC model selection.

Modules:
- _component: Component value and the floored Gaussian density kernel
- _model: Model snapshots, responsibilities, log-likelihood, BIC, Trajectory
- _optimizer: initialization, EM maximization, component-count search
- _io / _report: sample loading and model reports
"""

from ._component import Component, gaussian_density
from ._errors import ConvergenceWarning, InvalidInput
from ._io import load_samples, parse_samples
from ._model import Model, Trajectory
from ._optimizer import (
    DEFAULT_DELTA_RATIO,
    DEFAULT_MAX_ITER,
    EMOptimizer,
    OptimizerConfig,
    create_maximized_model,
    create_maximized_models,
    create_model,
    maximize,
)
from ._report import format_model, format_models, trajectory_frame

__all__ = [
    "Component",
    "ConvergenceWarning",
    "DEFAULT_DELTA_RATIO",
    "DEFAULT_MAX_ITER",
    "EMOptimizer",
    "InvalidInput",
    "Model",
    "OptimizerConfig",
    "Trajectory",
    "create_maximized_model",
    "create_maximized_models",
    "create_model",
    "format_model",
    "format_models",
    "gaussian_density",
    "load_samples",
    "maximize",
    "parse_samples",
    "trajectory_frame",
]
