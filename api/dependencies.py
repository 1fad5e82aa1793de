import logging
from fastapi import Request

import models
from config.waitlist_config import WaitlistConfig
from database import make_engine, make_sessionmaker
from redis_client import RedisClient
from services.rate_limiter import InMemorySlidingWindowRateLimiter, RateLimiter, RedisSlidingWindowRateLimiter
from services.recaptcha import RecaptchaVerifier
from services.waitlist_service import WaitlistService
from services.waitlist_store import WaitlistStore

logger = logging.getLogger(__name__)


async def build_rate_limiter(config: WaitlistConfig) -> RateLimiter:
    if config.rate_limit_backend == "memory":
        logger.warning("Using in-memory rate limiting; counts are not shared between workers")
        return InMemorySlidingWindowRateLimiter(
            max_requests=config.rate_limit_max_requests,
            window_seconds=config.rate_limit_window_seconds,
        )

    redis_client = await RedisClient.get_client(config)
    return RedisSlidingWindowRateLimiter(
        redis_client,
        max_requests=config.rate_limit_max_requests,
        window_seconds=config.rate_limit_window_seconds,
    )


async def build_waitlist_service(config: WaitlistConfig) -> WaitlistService:
    """Wire the waitlist workflow to its collaborators"""
    engine = make_engine(config.database_url)
    # Ensure tables exist
    models.WaitlistEntry.metadata.create_all(bind=engine)
    store = WaitlistStore(make_sessionmaker(engine))

    verifier = None
    if config.has_recaptcha_secret:
        verifier = RecaptchaVerifier(config.recaptcha_secret_key, verify_url=config.recaptcha_verify_url)

    rate_limiter = await build_rate_limiter(config)
    return WaitlistService(config=config, rate_limiter=rate_limiter, verifier=verifier, store=store)


### 🚀 Get Waitlist Service
def get_waitlist_service(request: Request) -> WaitlistService:
    return request.app.state.waitlist_service
