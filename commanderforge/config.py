from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "CommanderForge"
    debug: bool = False

    scryfall_api_url: str = "https://api.scryfall.com"
    card_data_path: Path = Path(__file__).parent.parent / "data" / "oracle-cards.json"

    # Legal non-land candidates required before generation is attempted
    min_legal_pool_size: int = 60

    # Price lookups share one serialized queue per generation run.
    # Scryfall asks for 50-100ms between requests.
    price_request_delay: float = 0.1
    price_max_retries: int = 5
    price_backoff_base: float = 0.5
    price_batch_size: int = 10
    prefer_cheapest_price: bool = False

    # Over-cap cards scoring above this are kept with a warning
    keep_anyway_threshold: float = 8.0

    basic_land_price: float = 0.25


settings = Settings()


# =============================================================================
# DECK SHAPE CONSTANTS
# =============================================================================

# Commander occupies the 100th slot
DECK_SIZE = 99

# Clamp for the recommended land count
MIN_LAND_COUNT = 30
MAX_LAND_COUNT = 42

# Share of the manabase reserved for basic lands
BASIC_LAND_SHARE = 0.65

# Bonus added per matched free-text theme keyword
THEME_KEYWORD_BONUS = 1.5
