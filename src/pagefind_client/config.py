"""Centralized configuration for pagefind-client using Pydantic Settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .domain.model import RankingWeights


class Settings(BaseSettings):
    """Strictly typed configuration loaded from ``PAGEFIND_*`` environment variables.

    Values passed explicitly to ``create_search_client`` take precedence over
    anything loaded here.
    """

    model_config = SettingsConfigDict(
        env_prefix="PAGEFIND_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Index location: http(s) URL, file:// URL or local directory
    base_path: str = Field(default="", description="Location of the pagefind bundle (contains pagefind-entry.json)")

    # Result presentation
    excerpt_length: int = Field(default=30, ge=1, description="Number of words in generated excerpts")

    # HTTP/Request settings
    http_timeout: float = Field(default=30.0, ge=1, description="HTTP request timeout in seconds")
    max_concurrent_requests: int = Field(default=16, ge=1, description="Maximum concurrent chunk fetches")
    user_agent: str = Field(default="pagefind-client/0.1", description="User-Agent header for chunk fetches")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")

    # Ranking overrides (None leaves the engine default in place)
    ranking_term_similarity: float | None = Field(default=None, ge=0)
    ranking_page_length: float | None = Field(default=None, ge=0)
    ranking_term_saturation: float | None = Field(default=None, ge=0)
    ranking_term_frequency: float | None = Field(default=None, ge=0)

    def ranking_weights(self) -> RankingWeights | None:
        """Build ranking overrides from settings.

        Returns:
            RankingWeights if any ranking override is set, None otherwise
        """
        weights = RankingWeights(
            term_similarity=self.ranking_term_similarity,
            page_length=self.ranking_page_length,
            term_saturation=self.ranking_term_saturation,
            term_frequency=self.ranking_term_frequency,
        )
        if weights.is_default():
            return None
        return weights

    def is_remote(self, base_path: str | None = None) -> bool:
        """Check whether a base path (the configured one by default) is fetched over HTTP."""
        location = self.base_path if base_path is None else base_path
        return location.startswith(("http://", "https://"))
