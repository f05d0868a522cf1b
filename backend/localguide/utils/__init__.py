from .rate_limiter import RateLimiter, RateLimitRecord, now_ms, rate_limiter

__all__ = ["RateLimiter", "RateLimitRecord", "now_ms", "rate_limiter"]
