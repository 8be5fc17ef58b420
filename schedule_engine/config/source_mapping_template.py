"""
Template for raw policy export -> canonical policy event mapping.

Each source system can copy this file to:
  schedule_engine/config/source_mapping_<system>.py
and adjust dictionaries/config without touching the engine.
"""

from __future__ import annotations


# ============================================================================
# Canonical schema
# ============================================================================

# Minimum canonical fields to build a clean policy event.
REQUIRED_CANONICAL_COLUMNS = (
    "record_id",
    "policy_id",
    "transaction_type",
    "policy_start_date",
)

# Optional fields. Amount columns missing from the source are left null.
# `effective_date` is an explicit event date; when absent, the event date is
# derived from `cancellation_date` / `policy_start_date`.
OPTIONAL_CANONICAL_COLUMNS = (
    "cancellation_date",
    "effective_date",
    "days_used",
    "days_paid",
    "payment_frequency",
    "annual_total_charge",
    "product_a_premium",
    "product_a_tax",
    "product_a_commission",
    "product_a_admin_fee",
    "product_b_premium",
    "product_b_tax",
    "product_b_commission",
    "product_c_premium",
    "product_c_tax",
    "product_c_commission",
    "product_c_admin_fee",
)

# Input columns -> canonical.
SOURCE_COLUMNS_MAP = {
    "RecordID": "record_id",
    "PolicyID": "policy_id",
    "TransactionType": "transaction_type",
    "PolicyStartDate": "policy_start_date",
    "CancellationDate": "cancellation_date",
    "EffectiveDate": "effective_date",
    "DaysUsed": "days_used",
    "DaysPaid": "days_paid",
    "PaymentFrequency": "payment_frequency",
    "AnnualTotalCharge": "annual_total_charge",
    "ProductA_Premium": "product_a_premium",
    "ProductA_TaxAmount": "product_a_tax",
    "ProductA_Commission": "product_a_commission",
    "ProductA_AdminFee": "product_a_admin_fee",
    "ProductB_Premium": "product_b_premium",
    "ProductB_TaxAmount": "product_b_tax",
    "ProductB_Commission": "product_b_commission",
    "ProductC_Premium": "product_c_premium",
    "ProductC_TaxAmount": "product_c_tax",
    "ProductC_Commission": "product_c_commission",
    "ProductC_AdminFee": "product_c_admin_fee",
}


# ============================================================================
# Optional parser controls
# ============================================================================

# Day-first parse for ambiguous date strings.
DATE_DAYFIRST = True

# Rows with policy_start_date earlier than this are dropped.
# Example: datetime.date(2023, 1, 1). None keeps the full history.
MIN_POLICY_START_DATE = None

# Default canonical values injected when source column is missing/blank.
# Example:
#   {"payment_frequency": "monthly"}
DEFAULT_CANONICAL_VALUES = {}
