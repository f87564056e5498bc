from datetime import date

from filedesk.timeutils import (
    arrival_follows,
    current_period,
    duration,
    format_long_date,
    format_period,
    from24h,
    is_period,
    minutes_since_midnight,
    parse12h,
    period_key,
    to12h,
    to24h,
)


def test_to12h_pads_and_parses_back():
    text = to12h(9, 5, "AM")
    assert text == "09:05 AM"
    assert parse12h(text) == (9, 5, "AM")


def test_parse12h_rejects_other_grammars():
    assert parse12h("13:00") is None
    assert parse12h("9.30 AM") is None
    assert parse12h("") is None
    assert parse12h(None) is None


def test_midnight_and_noon():
    assert minutes_since_midnight(12, 0, "AM") == 0
    assert minutes_since_midnight(12, 0, "PM") == 720
    assert minutes_since_midnight(1, 30, "PM") == 810


def test_duration_same_day():
    assert duration("09:00 AM", "05:30 PM") == "8h 30m"


def test_duration_wraps_past_midnight():
    assert duration("11:00 PM", "01:00 AM") == "2h 0m"


def test_duration_equal_times_is_a_full_day():
    assert duration("08:00 AM", "08:00 AM") == "24h 0m"


def test_duration_unparseable():
    assert duration("", "05:00 PM") == "N/A"
    assert duration("junk", "05:00 PM") == "N/A"


def test_arrival_follows_same_day_only_when_overnight_disallowed():
    assert arrival_follows("09:00 AM", "10:00 AM", allow_overnight=False)
    assert not arrival_follows("11:00 PM", "01:00 AM", allow_overnight=False)
    assert arrival_follows("11:00 PM", "01:00 AM", allow_overnight=True)


def test_from24h_converts_legacy_values():
    assert from24h("00:15") == "12:15 AM"
    assert from24h("12:00") == "12:00 PM"
    assert from24h("18:45") == "06:45 PM"
    assert from24h("06:45 PM") == "06:45 PM"
    assert from24h("") == ""


def test_to24h():
    assert to24h(12, 0, "AM") == "00:00"
    assert to24h(6, 45, "PM") == "18:45"


def test_periods():
    assert period_key("2024-03-15") == "2024-03"
    assert period_key("") == ""
    assert current_period(date(2024, 3, 15)) == "2024-03"
    assert is_period("2024-03")
    assert not is_period("2024-3")
    assert not is_period(None)
    assert format_period("2024-03") == "03/2024"


def test_format_long_date():
    assert format_long_date("2024-03-05") == "05 Mar 2024"
    assert format_long_date("2024-03-05T10:00:00.000Z") == "05 Mar 2024"
    assert format_long_date("") == "N/A"


def test_every_clock_time_parses_back():
    for period in ("AM", "PM"):
        for hour in range(1, 13):
            for minute in range(60):
                assert parse12h(to12h(hour, minute, period)) == (hour, minute, period)


def test_same_day_duration_matches_minute_difference():
    clocks = [(hour, minute, period) for period in ("AM", "PM") for hour in range(1, 13) for minute in (0, 1, 29, 59)]
    for start in clocks:
        for end in clocks:
            diff = minutes_since_midnight(*end) - minutes_since_midnight(*start)
            if diff <= 0:
                continue
            hours, minutes = divmod(diff, 60)
            assert duration(to12h(*start), to12h(*end)) == f"{hours}h {minutes}m"
