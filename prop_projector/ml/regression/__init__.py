"""Ridge regression solver and model trainer."""

from .ridge import RidgeSolution, add_intercept, gaussian_solve, solve_ridge, svd_ridge
from .trainer import ModelTrainer, TrainingConfig

__all__ = [
    "RidgeSolution",
    "add_intercept",
    "gaussian_solve",
    "solve_ridge",
    "svd_ridge",
    "ModelTrainer",
    "TrainingConfig",
]
