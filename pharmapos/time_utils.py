from datetime import date, datetime

import pytz

from pharmapos.config import settings


def shop_now() -> datetime:
    """Wall-clock time at the shop (naive), used to stamp sales."""
    shop_tz = pytz.timezone(settings.TIMEZONE)
    return datetime.now(shop_tz).replace(tzinfo=None)


def shop_today() -> date:
    return shop_now().date()
