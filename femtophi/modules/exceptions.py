"""
Custom exceptions for the femtoscopic Phi QA task

Provides a hierarchy of exceptions for better error handling and diagnostics.
All custom exceptions inherit from FemtoPhiError for easy catching.

The child-index mismatch of a Phi candidate is not represented
here: it is reported as a logged warning and the candidate is skipped.
"""


class FemtoPhiError(Exception):
    """
    Base exception for all QA task errors

    All custom exceptions inherit from this class, allowing users to catch
    all task-specific errors with a single except clause.
    """
    pass


class ConfigurationError(FemtoPhiError):
    """
    Raised when configuration is invalid or missing required fields

    Examples:
    - Missing or unparsable TOML file
    - Unknown configurable name in an override
    - Malformed binning specification
    """
    pass


class DataLoadError(FemtoPhiError):
    """
    Raised when input tables cannot be loaded

    Examples:
    - File not found
    - Missing table tree in a data frame
    - Base and extension particle tables are not row-aligned
    """
    pass


class ColumnMissingError(FemtoPhiError):
    """
    Raised when a required column is not found in an input table

    Examples:
    - Missing fPt in O2fdparticle
    - Column name typo in columns.toml
    """
    def __init__(self, column: str, tree: str = None):
        """
        Initialize ColumnMissingError

        Args:
            column: Name of the missing column (branch)
            tree: Optional name of the tree being read
        """
        self.column = column
        self.tree = tree

        message = f"Required column '{column}' not found"
        if tree:
            message += f" in table: {tree}"

        super().__init__(message)


class HistogramError(FemtoPhiError):
    """
    Raised when histogram booking or filling fails

    Examples:
    - Booking the same histogram path twice
    - Filling a histogram that was never booked
    - Requesting MC-truth histograms for reconstructed-only input
    """
    pass


class OutputError(FemtoPhiError):
    """
    Raised when analysis output cannot be written

    Examples:
    - Output directory not writable
    - ROOT file cannot be created
    """
    pass
