"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A reconciliation document fails for very different reasons: a missing
header field, a serial number counted twice, an approval attempted on a
draft, a currency with no published rate, or two approvers racing on the
same document. Callers react differently to each one, so every failure is
a distinct class with:

  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (field, line index, states, ids)

Example:
    try:
        service.submit(document_id, expected_status=DocumentStatus.DRAFT, ...)
    except DuplicateSerialNumberError as e:
        highlight_cell(e.line_index, e.serial_index)
    except CurrencyRateUnavailableError as e:
        show_banner(f"No rate for {e.from_currency_id}")
    except ConcurrentModificationError:
        refetch_and_retry()

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- ValidationError
    |   +-- DuplicateSerialNumberError
    |
    +-- WorkflowError
    |   +-- InvalidStateTransitionError
    |
    +-- CurrencyError
    |   +-- CurrencyRateUnavailableError
    |   +-- InvalidExchangeRateError
    |
    +-- ConcurrencyError
    |   +-- ConcurrentModificationError
    |
    +-- DocumentError
        +-- DocumentNotFoundError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                       | When Raised
-------------|----------------------------|-----------------------------------
Validation   | VALIDATION_ERROR           | Missing field, bad quantity/cost,
             |                            | zero lines, missing reason
             | DUPLICATE_SERIAL_NUMBER    | Serial repeated within a document
-------------|----------------------------|-----------------------------------
Workflow     | INVALID_STATE_TRANSITION   | Action not legal from the status
-------------|----------------------------|-----------------------------------
Currency     | CURRENCY_RATE_UNAVAILABLE  | No directed rate to the default
             | INVALID_EXCHANGE_RATE      | Rate is zero/negative/not numeric
-------------|----------------------------|-----------------------------------
Concurrency  | CONCURRENT_MODIFICATION    | expected status/version mismatch
-------------|----------------------------|-----------------------------------
Document     | DOCUMENT_NOT_FOUND         | Unknown document id

===============================================================================
RECOVERABILITY
===============================================================================

ValidationError, DuplicateSerialNumberError, CurrencyRateUnavailableError
and ConcurrentModificationError are recoverable: the caller fixes the
input, publishes a rate, or refetches and retries. InvalidStateTransitionError
indicates the caller offered an action the document status does not allow;
it is always rejected, never auto-corrected.

No exception here carries global state. Every error is local to one
document and one operation.
"""

from __future__ import annotations


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Validation exceptions


class ValidationError(InventoryKernelError):
    """
    Input rejected by a document rule.

    `field` names the offending field and `line_index` the offending line
    (zero-based) when the failure is line-scoped.
    """

    code: str = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        field: str | None = None,
        line_index: int | None = None,
    ):
        self.message = message
        self.field = field
        self.line_index = line_index
        super().__init__(message)


class DuplicateSerialNumberError(ValidationError):
    """A non-blank serial number appears more than once in a document."""

    code: str = "DUPLICATE_SERIAL_NUMBER"

    def __init__(
        self,
        serial_number: str,
        line_index: int,
        serial_index: int,
        other_line_index: int,
    ):
        self.serial_number = serial_number
        self.serial_index = serial_index
        self.other_line_index = other_line_index
        where = (
            "the same line"
            if other_line_index == line_index
            else f"line {other_line_index + 1}"
        )
        super().__init__(
            f"Serial number {serial_number!r} on line {line_index + 1} "
            f"is already used on {where}",
            field="serial_numbers",
            line_index=line_index,
        )


# Workflow exceptions


class WorkflowError(InventoryKernelError):
    """Base exception for document lifecycle errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidStateTransitionError(WorkflowError):
    """The requested action is not legal from the document's status."""

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(self, document_id: str, current_status: str, action: str):
        self.document_id = document_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action} document {document_id} "
            f"in status '{current_status}'"
        )


# Currency exceptions


class CurrencyError(InventoryKernelError):
    """Base exception for currency-related errors."""

    code: str = "CURRENCY_ERROR"


class CurrencyRateUnavailableError(CurrencyError):
    """No directed exchange rate exists from the document currency."""

    code: str = "CURRENCY_RATE_UNAVAILABLE"

    def __init__(self, from_currency_id: str, to_currency_id: str):
        self.from_currency_id = from_currency_id
        self.to_currency_id = to_currency_id
        super().__init__(
            f"Exchange rate not available: {from_currency_id} -> "
            f"{to_currency_id}"
        )


class InvalidExchangeRateError(CurrencyError):
    """Exchange rate value is invalid (zero, negative, or not numeric)."""

    code: str = "INVALID_EXCHANGE_RATE"

    def __init__(self, rate: str, reason: str):
        self.rate = rate
        self.reason = reason
        super().__init__(f"Invalid exchange rate {rate}: {reason}")


# Concurrency exceptions


class ConcurrencyError(InventoryKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConcurrentModificationError(ConcurrencyError):
    """
    The document changed since the caller last read it.

    Raised when an `expected_status` or `expected_version` precondition
    does not match the stored document. The caller should refetch and
    retry, never force-overwrite.
    """

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(self, document_id: str, expected: str, actual: str):
        self.document_id = document_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Document {document_id} was modified concurrently: "
            f"expected {expected}, found {actual}"
        )


# Document exceptions


class DocumentError(InventoryKernelError):
    """Base exception for document storage errors."""

    code: str = "DOCUMENT_ERROR"


class DocumentNotFoundError(DocumentError):
    """Document with given ID was not found."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(f"Document not found: {document_id}")
