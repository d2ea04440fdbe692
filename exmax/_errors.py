# exmax/_errors.py
"""Exceptions and warnings raised by exmax."""


class InvalidInput(ValueError):
    """Samples or component counts that cannot produce a mixture model."""


class ConvergenceWarning(UserWarning):
    """EM stopped at the iteration cap before the log-likelihood settled."""
