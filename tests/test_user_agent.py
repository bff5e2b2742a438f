from session_service.utils.user_agent import parse_user_agent
from conftest import CHROME_UA, IPHONE_UA

GOOGLEBOT_UA = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"
IPAD_UA = (
    "Mozilla/5.0 (iPad; CPU OS 16_6 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.6 Mobile/15E148 Safari/604.1"
)


def test_missing_user_agent():
    assert parse_user_agent(None) == (None, None, None)
    assert parse_user_agent("") == (None, None, None)


def test_desktop_chrome():
    info = parse_user_agent(CHROME_UA)
    assert info.device == "desktop"
    assert info.browser.startswith("Chrome 120")
    assert info.os.startswith("Windows")


def test_iphone_safari():
    info = parse_user_agent(IPHONE_UA)
    assert info.device == "mobile"
    assert info.browser.startswith("Mobile Safari")
    assert info.os.startswith("iOS 17")


def test_tablet():
    assert parse_user_agent(IPAD_UA).device == "tablet"


def test_bot():
    assert parse_user_agent(GOOGLEBOT_UA).device == "bot"


def test_unrecognised_string():
    info = parse_user_agent("totally-not-a-browser")
    assert info.browser is None
    assert info.os is None
