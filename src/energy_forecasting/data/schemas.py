from enum import Enum

class Column(str, Enum):
    """Column identifiers of the normalized series frame."""
    TIMESTAMP = 'timestamp'
    VALUE = 'value'

class SourceField(str, Enum):
    """
    Field names found in the raw energy exports.

    Note:
        15-minute CSV exports carry ``timestamp``/``value_kw`` rows;
        daily JSON exports nest ``day``/``day_total_kwh`` entries under
        ``entriesDaily``.
    """
    VALUE_KW = 'value_kw'
    DAY = 'day'
    DAY_TOTAL_KWH = 'day_total_kwh'
    ENTRIES_DAILY = 'entriesDaily'

class ResultField(str, Enum):
    """Keys of a serialized forecast result record."""
    TIMESTAMP = 'timestamp'
    PREDICTED = 'predictedValue'
    ACTUAL = 'actualValue'
    DEVIATION = 'deviation'
    ERROR_PERCENTAGE = 'errorPercentage'
