"""Exceptions raised at the workbook and command line boundaries.

The reconciliation functions themselves never raise for bad numbers; they
coerce them to zero. These errors only cover input that cannot be read.
"""


class LedgerReconcileError(Exception):
    """Base class for errors raised by this package."""


class WorkbookFormatError(LedgerReconcileError, ValueError):
    """A workbook is missing a required worksheet or header."""


class InvalidDateError(LedgerReconcileError, ValueError):
    """A date argument could not be parsed in any accepted format."""


__all__ = ["LedgerReconcileError", "WorkbookFormatError", "InvalidDateError"]
