from typing import NamedTuple, Optional
from user_agents import parse

# ua-parser reports unknown families as "Other"
_UNKNOWN = "Other"


class DeviceInfo(NamedTuple):
    device: Optional[str]
    browser: Optional[str]
    os: Optional[str]


def _label(family: str, version: str) -> Optional[str]:
    if not family or family == _UNKNOWN:
        return None
    return f"{family} {version}".strip()


def parse_user_agent(user_agent: Optional[str]) -> DeviceInfo:
    if not user_agent:
        return DeviceInfo(None, None, None)

    ua = parse(user_agent)
    if ua.is_bot:
        device = "bot"
    elif ua.is_tablet:
        device = "tablet"
    elif ua.is_mobile:
        device = "mobile"
    else:
        device = "desktop"

    return DeviceInfo(
        device=device,
        browser=_label(ua.browser.family, ua.browser.version_string),
        os=_label(ua.os.family, ua.os.version_string),
    )
