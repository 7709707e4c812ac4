"""Lie groups (SO2, SO3, bundles), tangent-space differentiation and trust-region steps."""

__version__ = "0.1.0"

__all__ = ["lie_group", "so2", "so3", "bundle", "tr_solver", "diff"]