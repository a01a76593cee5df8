"""
Logging and Warning Configuration Utilities

This module provides centralized control over logging, warning messages and
progress bars of the QA task.

Usage:
    from femtophi.utils.logging_config import setup_logging, suppress_warnings
    logger = setup_logging(verbose=False)
    suppress_warnings()  # Suppress all warnings by default

    # Or with more control:
    suppress_warnings(level='error')  # Only show errors
    suppress_warnings(level='default')  # Show all warnings

    # Via environment variable:
    export FEMTOPHI_WARNINGS=on  # Show warnings
    export FEMTOPHI_WARNINGS=off  # Suppress warnings (default)
    export FEMTOPHI_PROGRESS=off  # No progress bars
"""

import logging
import os
import warnings
from typing import Literal

import numpy as np

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Configure logging level and return the package logger"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
    return logging.getLogger("FemtoPhi")


def suppress_warnings(level: Literal["off", "error", "default", "all"] = "off") -> None:
    """
    Configure warning levels.

    Args:
        level: Warning level to set
            - 'off': Suppress all warnings (default)
            - 'error': Turn warnings into errors
            - 'default': Show important warnings but filter common noise
            - 'all': Show everything (useful for debugging)

    Environment variable FEMTOPHI_WARNINGS overrides the level parameter.
    Logged messages (e.g. child-index mismatches) are not affected.
    """
    env_level = os.environ.get("FEMTOPHI_WARNINGS", "").lower()
    if env_level in ["on", "yes", "true", "1"]:
        level = "all"
    elif env_level in ["off", "no", "false", "0"]:
        level = "off"
    elif env_level in ["error", "default"]:
        level = env_level

    if level == "off":
        warnings.filterwarnings("ignore")
        np.seterr(all="ignore")

    elif level == "error":
        warnings.filterwarnings("error")
        warnings.filterwarnings("ignore", category=DeprecationWarning)
        warnings.filterwarnings("ignore", category=FutureWarning)

    elif level == "default":
        warnings.filterwarnings("default")
        warnings.filterwarnings("ignore", category=DeprecationWarning)
        warnings.filterwarnings("ignore", message=".*uproot.*")
        warnings.filterwarnings("ignore", message=".*awkward.*")

    elif level == "all":
        warnings.filterwarnings("default")
        np.seterr(all="warn")

    _suppress_library_warnings(level)


def _suppress_library_warnings(level: str) -> None:
    """Suppress known noisy warnings from specific libraries."""
    if level in ["off", "error", "default"]:
        warnings.filterwarnings("ignore", module="awkward.*")
        warnings.filterwarnings("ignore", module="uproot.*")
        warnings.filterwarnings("ignore", message=".*Matplotlib.*")
        # mplhep complains about fonts missing on batch nodes
        warnings.filterwarnings("ignore", module="mplhep.*")


def enable_progress_bars() -> bool:
    """
    Check if progress bars should be enabled.

    Can be controlled via FEMTOPHI_PROGRESS environment variable.
    """
    env_progress = os.environ.get("FEMTOPHI_PROGRESS", "on").lower()
    return env_progress in ["on", "yes", "true", "1"]


def get_tqdm_kwargs(desc: str = "", **kwargs) -> dict:
    """
    Get standard kwargs for tqdm progress bars with consistent styling.

    Args:
        desc: Description for the progress bar
        **kwargs: Additional tqdm parameters

    Returns:
        Dictionary of tqdm parameters
    """
    default_kwargs = {
        "desc": desc,
        "unit": "it",
        "ncols": 80,
        "bar_format": "{l_bar}{bar}| {n_fmt} [{elapsed}, {rate_fmt}{postfix}]",
        "disable": not enable_progress_bars(),
    }
    default_kwargs.update(kwargs)
    return default_kwargs
