"""
Business rules of the payment schedule engine.

Declared as plain data so that a new product, component or frequency is a
change here, not in the engine.
"""

from __future__ import annotations


# ============================================================================
# Term model
# ============================================================================

# Policies run for a fixed 12-month term.
TERM_MONTHS: int = 12

# Rows with DaysPaid >= this value are treated as fully paid upstream and
# their monetary columns are zeroed before scheduling.
FULLY_PAID_DAYS: int = 365


# ============================================================================
# Payment frequency
# ============================================================================

FREQUENCY_MONTHLY = "monthly"
FREQUENCY_QUARTERLY = "quarterly"
FREQUENCY_ANNUAL = "annual"

# Months between consecutive instalments.
FREQUENCY_INTERVAL_MONTHS = {
    FREQUENCY_MONTHLY: 1,
    FREQUENCY_QUARTERLY: 3,
    FREQUENCY_ANNUAL: 12,
}

# Unknown or blank frequencies schedule monthly.
DEFAULT_INTERVAL_MONTHS: int = 1

# Instalments an annual amount is split into.
FREQUENCY_INSTALMENT_COUNTS = {
    FREQUENCY_MONTHLY: 12,
    FREQUENCY_QUARTERLY: 4,
    FREQUENCY_ANNUAL: 1,
}

# Cancellations settle as one lump sum.
CANCELLATION_INSTALMENT_COUNT: int = 1


# ============================================================================
# Transaction types
# ============================================================================

TRANSACTION_NEW = "New"
TRANSACTION_RENEWAL = "Renewal"
TRANSACTION_UPGRADE = "Upgrade"
TRANSACTION_CANCELLATION = "Cancellation"

KNOWN_TRANSACTION_TYPES = (
    TRANSACTION_NEW,
    TRANSACTION_RENEWAL,
    TRANSACTION_UPGRADE,
    TRANSACTION_CANCELLATION,
)

# Upper-cased source label -> canonical transaction type.
TRANSACTION_TYPE_ALIASES = {
    "NEW": TRANSACTION_NEW,
    "NEW BUSINESS": TRANSACTION_NEW,
    "RENEWAL": TRANSACTION_RENEWAL,
    "UPGRADE": TRANSACTION_UPGRADE,
    "CANCELLATION": TRANSACTION_CANCELLATION,
    "CANCEL": TRANSACTION_CANCELLATION,
}


# ============================================================================
# Cancellation status labels
# ============================================================================

STATUS_NO_CANCELLATION = "No Cancellation"
STATUS_BEFORE_CANCELLATION = "Before Cancellation"
STATUS_IN_CANCELLATION_MONTH = "In Cancellation Month"
STATUS_AFTER_CANCELLATION = "After Cancellation"
STATUS_RENEWAL_CANCELLATION = "Renewal Cancellation"

CANCELLATION_STATUSES = (
    STATUS_NO_CANCELLATION,
    STATUS_BEFORE_CANCELLATION,
    STATUS_IN_CANCELLATION_MONTH,
    STATUS_AFTER_CANCELLATION,
    STATUS_RENEWAL_CANCELLATION,
)


# ============================================================================
# Products and monetary components
# ============================================================================

# Product code -> annualised components carried by that product.
# Input columns are named product_{code}_{component}.
PRODUCT_COMPONENTS: dict[str, tuple[str, ...]] = {
    "a": ("premium", "tax", "commission", "admin_fee"),
    "b": ("premium", "tax", "commission"),
    "c": ("premium", "tax", "commission", "admin_fee"),
}

COMPONENTS: tuple[str, ...] = ("premium", "tax", "commission", "admin_fee")
