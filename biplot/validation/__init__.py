"""
Biplot Validation Module

Validates input matrices before compute engines run.

Exports:
    - validate_matrix: Validate shape, dtype and completeness of a numeric matrix
    - InvalidInputError: Raised when input validation fails
    - InputValidationReport: Report returned when raise_on_error=False
"""

from .input_validation import (
    validate_matrix,
    InvalidInputError,
    InputValidationReport,
    default_column_names,
)

__all__ = [
    'validate_matrix',
    'InvalidInputError',
    'InputValidationReport',
    'default_column_names',
]
