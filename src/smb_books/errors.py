# SMB Books - Invoicing & Expense Analytics for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""Exception and warning types shared by the SMB Books modules."""

from typing import Optional


class SmbBooksError(Exception):
    """Base class for all errors raised by SMB Books."""


class RecordValidationError(SmbBooksError, ValueError):
    """
    A single invoice or expense record could not be used.

    The aggregator never lets this error escape: the offending record is
    excluded and reported back to the caller as a SkippedRecord.
    """

    def __init__(
        self,
        message: str,
        record_id: Optional[str] = None,
        field: Optional[str] = None,
    ):
        super().__init__(message)
        self.record_id = record_id
        self.field = field


class TemplateConfigError(SmbBooksError, ValueError):
    """An invoice template is unusable (no configuration at all, wrong types)."""


class ConfigValidationWarning(UserWarning):
    """
    A template value was outside its allowed set and has been replaced
    by its default.

    Instances are collected in render results rather than raised.
    """

    def __init__(self, key: str, value: object, default: str):
        super().__init__(
            f"Invalid value {value!r} for '{key}', falling back to {default!r}."
        )
        self.key = key
        self.value = value
        self.default = default
