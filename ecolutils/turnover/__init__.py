"""Community turnover along gradients."""

from .split_window import SplitWindowResult, check_window_size, split_window_analysis, window_ratio

__all__ = ["SplitWindowResult", "check_window_size", "split_window_analysis", "window_ratio"]
