"""
Calendar-date helpers.

Dates travel through the API and the database as YYYY-MM-DD strings;
there is no time-of-day or timezone component anywhere in this module.
"""
import re
from datetime import date, datetime, timedelta
from typing import Optional

from cleancheck.core.exceptions import InvalidDateFormatError

DATE_FORMAT = "%Y-%m-%d"
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# weekday() -> days to step back to reach the previous workday
# Monday goes back to Friday, Saturday and Sunday go back to Friday
_WORKDAY_OFFSETS = {0: 3, 1: 1, 2: 1, 3: 1, 4: 1, 5: 1, 6: 2}


def parse_date(value: str) -> date:
    """
    Parse a YYYY-MM-DD string.

    Raises:
        InvalidDateFormatError: If the value does not match the pattern
            or is not a real calendar date (e.g. 2024-02-30)
    """
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise InvalidDateFormatError()
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        raise InvalidDateFormatError()


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def validate_date_string(value: str) -> str:
    """Return the value unchanged if it is a valid YYYY-MM-DD date."""
    parse_date(value)
    return value


def previous_workday(day: date) -> date:
    return day - timedelta(days=_WORKDAY_OFFSETS[day.weekday()])


def last_workday(value: str) -> str:
    """
    Map a YYYY-MM-DD date to the business day before it.

    Examples:
        last_workday("2024-06-10")  # Monday    -> "2024-06-07"
        last_workday("2024-06-09")  # Sunday    -> "2024-06-07"
        last_workday("2024-06-12")  # Wednesday -> "2024-06-11"
    """
    return format_date(previous_workday(parse_date(value)))


def today_string(today: Optional[date] = None) -> str:
    return format_date(today or date.today())
