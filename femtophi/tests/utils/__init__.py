"""
Test utilities.

Provides builders for synthetic femto tables and AO2D files used across
the test suite.
"""

from .mock_data_generator import FemtoFrameBuilder, write_mock_ao2d

__all__ = [
    "FemtoFrameBuilder",
    "write_mock_ao2d",
]
