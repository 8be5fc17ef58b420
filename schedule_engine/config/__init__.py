from .schedule_rules import (
    CANCELLATION_INSTALMENT_COUNT,
    CANCELLATION_STATUSES,
    COMPONENTS,
    DEFAULT_INTERVAL_MONTHS,
    FREQUENCY_INSTALMENT_COUNTS,
    FREQUENCY_INTERVAL_MONTHS,
    FULLY_PAID_DAYS,
    KNOWN_TRANSACTION_TYPES,
    PRODUCT_COMPONENTS,
    STATUS_AFTER_CANCELLATION,
    STATUS_BEFORE_CANCELLATION,
    STATUS_IN_CANCELLATION_MONTH,
    STATUS_NO_CANCELLATION,
    STATUS_RENEWAL_CANCELLATION,
    TERM_MONTHS,
    TRANSACTION_CANCELLATION,
    TRANSACTION_NEW,
    TRANSACTION_RENEWAL,
    TRANSACTION_TYPE_ALIASES,
    TRANSACTION_UPGRADE,
)
from .source_mapping_template import (
    REQUIRED_CANONICAL_COLUMNS,
    OPTIONAL_CANONICAL_COLUMNS,
    SOURCE_COLUMNS_MAP,
    DATE_DAYFIRST,
    MIN_POLICY_START_DATE,
    DEFAULT_CANONICAL_VALUES,
)

# Hard stop for schedule date generation; a 12-month term never gets close.
MAX_SCHEDULE_DATES_PER_EVENT: int = 1_000
