"""Tips-Lines: backtesting and strategy optimisation for the 3×3 pool grid."""

__version__ = "0.1.0"
