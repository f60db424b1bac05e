from dateutil.relativedelta import relativedelta
from app.core.constants import Frequency
from app.core.exceptions import UnsupportedFrequency

# relativedelta clamps month arithmetic to the last valid day (Jan 31 + 1 month = Feb 28/29)
FREQUENCY_STEPS = {
    Frequency.DAILY: relativedelta(days=1),
    Frequency.WEEKLY: relativedelta(weeks=1),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.QUARTERLY: relativedelta(months=3),
}


def parse_frequency(value):
    """Accept a Frequency or its string value; anything else is corrupted data."""
    if isinstance(value, Frequency):
        return value
    try:
        return Frequency(str(value).upper())
    except ValueError:
        raise UnsupportedFrequency(value) from None


def next_execution_date(current_date, frequency):
    """Calculate the next due date after ``current_date`` for ``frequency``."""
    return current_date + FREQUENCY_STEPS[parse_frequency(frequency)]
