from datetime import date, timedelta

from moonlit_scheduler.utils import DateParser, ValidationUtils


def test_normalize_phone():
    assert ValidationUtils.normalize_phone("(801) 555-0123") == "8015550123"
    assert ValidationUtils.normalize_phone("+1 801 555 0123") == "8015550123"
    assert ValidationUtils.normalize_phone("555-0123") is None
    assert ValidationUtils.normalize_phone("011-555-0123") is None
    assert ValidationUtils.normalize_phone("") is None


def test_validate_phone():
    assert ValidationUtils.validate_phone("801.555.0123") == (True, None)
    ok, msg = ValidationUtils.validate_phone(None)
    assert not ok and msg == "Phone number is required"


def test_validate_email():
    assert ValidationUtils.validate_email("jordan@example.com")[0]
    assert not ValidationUtils.validate_email("jordan@example")[0]
    assert not ValidationUtils.validate_email("")[0]


def test_validate_name():
    assert ValidationUtils.validate_name("Mary-Jo O'Neil")[0]
    ok, msg = ValidationUtils.validate_name("  ", "First name")
    assert not ok and msg == "First name is required"
    assert not ValidationUtils.validate_name("R2D2")[0]
    assert not ValidationUtils.validate_name("x" * 101)[0]


def test_validate_date_of_birth():
    today = date(2025, 6, 2)
    assert ValidationUtils.validate_date_of_birth("1988-03-14", today) == (True, None)
    assert not ValidationUtils.validate_date_of_birth("2025-06-02", today)[0]
    assert not ValidationUtils.validate_date_of_birth("1850-01-01", today)[0]
    assert not ValidationUtils.validate_date_of_birth("03/14/1988", today)[0]
    assert not ValidationUtils.validate_date_of_birth(None, today)[0]


def test_sanitize_text():
    assert ValidationUtils.sanitize_text("  Jordan \x00  Rivera ") == "Jordan Rivera"
    assert ValidationUtils.sanitize_text("   ") is None
    assert ValidationUtils.sanitize_text(None) is None


def test_parse_date_of_birth():
    parser = DateParser("America/Denver")
    assert parser.parse_date_of_birth("1988-03-14") == "1988-03-14"
    assert parser.parse_date_of_birth("03/14/1988") == "1988-03-14"
    assert parser.parse_date_of_birth("not a date") is None
    assert parser.parse_date_of_birth("") is None


def test_parse_appointment_date():
    parser = DateParser("America/Denver")
    today = parser.today()
    assert parser.parse_appointment_date(today.isoformat()) == today
    assert parser.parse_appointment_date((today - timedelta(days=1)).isoformat()) is None
    assert parser.parse_appointment_date("tomorrow") == today + timedelta(days=1)
    assert parser.parse_appointment_date("") is None


def test_now_is_timezone_aware():
    parser = DateParser("America/Denver")
    assert parser.now().tzinfo is not None
    assert str(parser.tz) == "America/Denver"
