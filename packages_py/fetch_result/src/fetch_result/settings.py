"""Default retry tuning loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from fetch_retry import RetryPolicy, validate_policy


class FetchResultSettings(BaseSettings):
    """Settings read from FETCH_RESULT_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="FETCH_RESULT_", case_sensitive=False)

    # Retry
    number_of_retries: int = 2
    base_delay_seconds: float = 2.0
    jitter_upper_bound_ms: int = 1000
    retry_on_status: list[int] = [408, 429, 500, 502, 503, 504]
    retry_on_deserialization_failure: bool = True

    # Logging
    log_retries: bool = True

    def to_retry_policy(self) -> RetryPolicy:
        """Build a validated retry policy from these settings."""
        return validate_policy(
            RetryPolicy(
                max_retries=self.number_of_retries,
                base_delay_seconds=self.base_delay_seconds,
                jitter_upper_bound_ms=self.jitter_upper_bound_ms,
                retry_on_status=tuple(self.retry_on_status),
                retry_on_deserialization_failure=self.retry_on_deserialization_failure,
            )
        )


@lru_cache()
def get_settings() -> FetchResultSettings:
    """Get cached settings instance."""
    return FetchResultSettings()
