"""
Shared rate limiter (attached to app.state in mbic.main, used by route decorators)
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from mbic.config import settings

limiter = Limiter(key_func=get_remote_address, default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"])
