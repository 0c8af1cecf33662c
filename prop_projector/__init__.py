"""Player prop projections from ridge regression and heuristic ensembles."""

__version__ = "1.0.0"
